"""Deploy Notifier - chat notices for deployment lifecycles."""

__version__ = "0.1.0"
