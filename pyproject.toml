[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pangolincli"
version = "0.5.0"
description = "Helpers for a Pangolin client: settings, device fingerprints and posture checks, local tunnel client control and update checks"
requires-python = ">=3.10"
dependencies = [
    "semver",
]
keywords = ["pangolin", "tunnel", "vpn", "fingerprint", "posture", "olm"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Operating System :: MacOS",
    "Operating System :: Microsoft :: Windows",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["pangolincli"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
