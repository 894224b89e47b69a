"""Settings, device fingerprinting, posture checks, update checks and local tunnel client control for Pangolin."""

__version__ = "0.5.0"