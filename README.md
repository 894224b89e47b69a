# pangolincli

A library of building blocks for a Pangolin client on the local machine.

## What it contains

- `pangolincli.settings`: the CLI settings file `~/.config/pangolin/config.json`.
  `load_config(path=None)` merges defaults, the file and `PANGOLIN_CLI_*`
  environment variables (for example `PANGOLIN_CLI_LOG_LEVEL`) into a
  `Config` with `log_level`, `log_file` and `disable_update_check`.
  `Config.validate()` raises `ValueError` for a log level other than `debug`
  or `info`. `Config.save()` writes the file back. Under `sudo` the config
  directory resolves to the invoking user's home. `get_fingerprint_file_path()`
  gives the location of the cached platform fingerprint: `/etc/pangolin` on
  Linux, the config directory elsewhere.
- `pangolincli.olm_client`: `OlmClient` talks HTTP over the Unix socket
  `/var/run/olm.sock` (or one you name). It provides `get_status()`, `exit()`,
  `switch_org(org_id)` and `is_running()`. Failures raise `OlmError`.
- `pangolincli.fingerprint`: `gather_fingerprint_info()`,
  `gather_posture_checks()` and `get_device_name()` for the current platform,
  which may be Linux, macOS or Windows. `format_posture_report(checks)` renders
  posture checks as readable text followed by JSON. The per-platform modules
  `fingerprint_linux`, `fingerprint_darwin` and `fingerprint_windows` are
  available too. Linux and macOS checks run system tools such as `lsblk`,
  `uname`, `system_profiler` and `fdesetup`.
- `pangolincli.update_check`: `compare_versions(current, latest)` compares
  semantic versions, with or without a leading `v`.
  `check_for_update_async(show_message)` calls `show_message` with a newer
  release when one is found. It fetches the latest release over HTTP at most
  once every twelve hours and keeps the result in
  `pangolin-update-check.json` in the config directory.
- `pangolincli.identity`: `user_display_name`, `account_display_name` and
  `account_display_name_with_host`. These work on any object with `email`,
  `name`, `username` (and `host`) attributes. The module also provides
  `switch_active_client_org(org_id)`, which moves a running tunnel client
  started by this tool to another organisation.
- `pangolincli.logger`: console output through `info`, `debug`, `success`,
  `warning` and `error`. Debug output appears only after
  `init_logger(LogLevel.DEBUG)`.
- `pangolincli.table`: `format_table(headers, rows)` and `print_table(headers, rows)`
  lay out plain-text tables with aligned columns.
- `pangolincli.logpreview`: `run_log_preview(LogPreviewConfig(...))` shows the
  last five lines of a log file and a status line until an exit condition
  holds, an error is reported, or the user presses Ctrl+C.

## What it does not do

The package has no command-line program of its own. It does not store login
sessions or accounts, and it has no client for the Pangolin server's web API.
Logging in, choosing an organisation on the server and creating tunnel
credentials are left to the application that uses these pieces.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Examples

Query the running tunnel client:

```python
from pangolincli.olm_client import OlmClient

client = OlmClient()
if client.is_running():
    status = client.get_status()
    print(status.connected, status.org_id)
```

Print the device's posture:

```python
from pangolincli.fingerprint import gather_posture_checks, format_posture_report

print(format_posture_report(gather_posture_checks()))
```

Read and check the settings:

```python
from pangolincli.settings import load_config

config = load_config()
config.validate()
print(config.log_level, config.log_file)
```

Print a table:

```python
from pangolincli.table import print_table

print_table(["NAME", "ID"], [["Home", "org-1"], ["Work", "org-2"]])
```