"""auditscore: security scoring and analysis history for smart-contract audits."""

__app_name__ = "auditscore"
__version__ = "0.1.0"
