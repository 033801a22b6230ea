import copy
import json
import logging
import sys
import traceback
from logging.handlers import RotatingFileHandler
from pathlib import Path

from core.config import settings

LOGS_DIR = Path(settings.LOG_DIR)
LOGS_DIR.mkdir(parents=True, exist_ok=True)


class ColoredFormatter(logging.Formatter):
    """Colored level names for the terminal."""

    COLORS = {
        'DEBUG': '\033[36m',  # cyan
        'INFO': '\033[32m',  # green
        'WARNING': '\033[33m',  # yellow
        'ERROR': '\033[31m',  # red
        'CRITICAL': '\033[35m',  # magenta
        'RESET': '\033[0m'
    }

    def format(self, record):
        # the same record also reaches the file handler
        record = copy.copy(record)
        log_color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        record.levelname = f"{log_color}{record.levelname}{self.COLORS['RESET']}"
        return super().format(record)


def setup_logger(
        name: str,
        log_file: str = None,
        level: int = None,
        max_bytes: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5
) -> logging.Logger:
    """
    Build a logger that writes to the console and, optionally, a rotating file.

    Args:
        name: logger name
        log_file: file name under LOG_DIR (console only when None)
        level: logging level, defaults to settings.LOG_LEVEL
        max_bytes: size at which the file is rotated
        backup_count: number of rotated files to keep
    """
    if level is None:
        level = logging.getLevelName(settings.LOG_LEVEL.upper())
        if not isinstance(level, int):
            level = logging.DEBUG

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()

    log_format = '%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(log_format, datefmt=date_format))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = RotatingFileHandler(
            LOGS_DIR / log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))
        logger.addHandler(file_handler)

    return logger


class DatabaseLogger:
    """Logs record store operations."""

    def __init__(self, logger_name: str = "database"):
        self.logger = setup_logger(
            name=logger_name,
            log_file=f"{logger_name}.log"
        )

    def log_create(self, model_name: str, data: dict):
        self.logger.info(
            f"CREATE {model_name}:\n{json.dumps(data, ensure_ascii=False, indent=2, default=str)}"
        )

    def log_update(self, model_name: str, record_id, changes: dict):
        self.logger.info(
            f"UPDATE {model_name} (id={record_id}):\n"
            f"{json.dumps(changes, ensure_ascii=False, indent=2, default=str)}"
        )

    def log_delete(self, model_name: str, record_id, deleted: bool = True):
        if deleted:
            self.logger.warning(f"DELETE {model_name} (id={record_id})")
        else:
            self.logger.info(f"DELETE {model_name} (id={record_id}) - nothing to delete")

    def log_denied(self, model_name: str, record_id, user_id):
        self.logger.warning(f"DENIED {model_name} (id={record_id}) for user={user_id}")

    def log_error(self, operation: str, error: Exception):
        self.logger.error(
            f"DB ERROR in {operation}:\n"
            f"Error Type: {type(error).__name__}\n"
            f"Error Message: {str(error)}\n"
            f"Traceback:\n{traceback.format_exc()}"
        )


class RecognitionLogger:
    """Logs calls to the external identification / health APIs."""

    def __init__(self, logger_name: str = "recognition"):
        self.logger = setup_logger(
            name=logger_name,
            log_file=f"{logger_name}.log"
        )

    def log_request(self, endpoint: str, image_bytes: int, params: dict = None):
        msg = f"🚀 REQUEST {endpoint} ({image_bytes} bytes of image)"
        if params:
            msg += f"\nPARAMS: {json.dumps(params, ensure_ascii=False)}"
        self.logger.info(msg)

    def log_response(self, endpoint: str, status_code: int):
        self.logger.info(f"✅ RESPONSE {endpoint}: status={status_code}")

    def log_error(self, context: str, error: Exception):
        self.logger.error(
            f"❌ RECOGNITION ERROR in {context}:\n"
            f"Error Type: {type(error).__name__}\n"
            f"Error Message: {str(error)}"
        )


db_logger = DatabaseLogger()
recognition_logger = RecognitionLogger()
app_logger = setup_logger("app", "app.log")
