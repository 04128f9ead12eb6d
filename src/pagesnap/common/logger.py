# logger.py
import logging
import logging.config
from pathlib import Path

from pagesnap.util.file_utils import from_json_or_yaml

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def get_log_dir():
    """
    Determines a suitable directory for log files.
    Logs are stored in the user's home directory under '.pagesnap/logs/'.
    """
    log_dir = Path.home() / '.pagesnap' / 'logs'
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def default_logging_config(log_file_path=None):
    handlers = {
        "console_handler": {
            "class": "logging.StreamHandler",
            "level": "WARNING",
            "formatter": "default",
            "stream": "ext://sys.stderr",
        },
    }
    if log_file_path:
        handlers["file_handler"] = {
            "class": "logging.FileHandler",
            "level": "INFO",
            "formatter": "default",
            "filename": str(log_file_path),
            "mode": "a",
        }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": {"format": DEFAULT_LOG_FORMAT}},
        "handlers": handlers,
        "root": {"level": "INFO", "handlers": list(handlers)},
    }


def setup_logging(
    config_file_path=None,
    log_file_path=None,
    verbose=False,
):
    """
    Loads logging config from 'config_file_path' (YAML or JSON) and sets up logging.
    Without a config file a console handler (plus a file handler when
    'log_file_path' is given) is used. Optionally override the file handler's
    filename, and set root logger to DEBUG if 'verbose'.
    """
    if config_file_path:
        config = from_json_or_yaml(config_file_path)
        # If user passed a custom file path for logs, override the "filename" in the config
        if log_file_path and "file_handler" in config.get("handlers", {}):
            config["handlers"]["file_handler"]["filename"] = str(log_file_path)
    else:
        config = default_logging_config(log_file_path)

    logging.config.dictConfig(config)

    if verbose:
        root = logging.getLogger()
        root.setLevel(logging.DEBUG)
        for handler in root.handlers:
            handler.setLevel(logging.DEBUG)

    return logging.getLogger(__name__)
