"""Actionable error catalog for paymentermgr."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "not_root": {
        "what": "This tool must be run as root.",
        "next": "Re-run it with `sudo` or from a root shell.",
    },
    "unsupported_os": {
        "what": "Unsupported operating system: {name}.",
        "next": "Use one of the supported releases: {supported}.",
    },
    "unsupported_release": {
        "what": "Unsupported {name} release {version}.",
        "next": "Use one of the supported releases: {supported}.",
    },
    "not_installed": {
        "what": "Paymenter is not installed at {path}.",
        "next": "Run a new installation first or fix `install_dir` in the configuration.",
    },
    "package_install_failed": {
        "what": "Failed to install package `{package}`.",
        "next": "Inspect the log file, fix the apt sources or network, then re-run the installation.",
    },
    "insecure_http": {
        "what": "{label} uses insecure HTTP.",
        "next": "Point `release_url` at an HTTPS location.",
    },
    "backup_failed": {
        "what": "Backup failed while creating the {phase} artifact.",
        "next": "Check free disk space and database access; partial artifacts were kept in {path}.",
    },
    "step_failed": {
        "what": "Step `{step}` failed: {message}",
        "next": "Fix the underlying problem and re-run the whole operation.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
