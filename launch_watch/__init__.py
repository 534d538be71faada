"""launch-watch: watch a token launch listing and forward new launches to Telegram."""

__version__ = "1.0.0"

__all__ = ["__version__"]
