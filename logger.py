"""
Structured Logging for FitTrack.
Console, rotating file and error-only outputs with JSON context
attached to every record written to disk.
"""
import logging
import logging.handlers
import os
import time
import json
import traceback
from pathlib import Path
from typing import Optional, Dict, Any, Union
from enum import Enum, auto
from contextlib import contextmanager
from datetime import datetime
import uuid
class LogLevel(Enum):
    """Log levels, including a TRACE level below DEBUG."""
    TRACE = 5
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50
class LogCategory(Enum):
    """Categories used to group tracker log records."""
    SYSTEM = auto()
    SESSION = auto()
    GPS = auto()
    NETWORK = auto()
    STATS = auto()
    RENDER = auto()
    CONFIG = auto()
    USER_ACTION = auto()
class StructuredFormatter(logging.Formatter):
    """Formatter that appends structured context as a JSON blob."""
    def __init__(self, include_json=True):
        super().__init__()
        self.include_json = include_json
    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).isoformat()
        basic_line = f"[{timestamp}] {record.levelname:8} {record.name}: {record.getMessage()}"
        structured_data = {}
        for key, value in record.__dict__.items():
            if key.startswith('field_') or key in ['category', 'run_id']:
                structured_data[key] = value
        if record.exc_info:
            structured_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }
        structured_data['location'] = {
            'filename': record.filename,
            'line': record.lineno,
            'function': record.funcName
        }
        if self.include_json:
            json_data = json.dumps(structured_data, default=str, ensure_ascii=False)
            return f"{basic_line} | {json_data}"
        return basic_line
def default_log_dir() -> Path:
    """Log directory from ``FITTRACK_LOG_DIR`` or the per-user default."""
    override = os.environ.get("FITTRACK_LOG_DIR")
    if override:
        return Path(override)
    return Path.home() / "FitTrack" / "logs"
class FitTrackLogger:
    """Application logger carrying a per-run identifier."""
    def __init__(self, name: str = "fittrack", log_dir: Optional[Path] = None):
        self.name = name
        self.run_id = str(uuid.uuid4())[:8]
        self.log_dir = Path(log_dir) if log_dir is not None else default_log_dir()
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._setup_loggers()
        self.info("FitTrack logging initialized",
                  category=LogCategory.SYSTEM,
                  log_dir=str(self.log_dir))
    def _setup_loggers(self):
        """Attach console, rotating file and error handlers."""
        self.logger = logging.getLogger(self.name)
        self.logger.setLevel(logging.DEBUG)
        for handler in list(self.logger.handlers):
            handler.close()
        self.logger.handlers.clear()
        self.logger.propagate = False
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(StructuredFormatter(include_json=False))
        self.logger.addHandler(console_handler)
        file_handler = logging.handlers.RotatingFileHandler(
            self.log_dir / f"{self.name}.log", maxBytes=5*1024*1024, backupCount=3,
            encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StructuredFormatter(include_json=True))
        self.logger.addHandler(file_handler)
        error_handler = logging.handlers.RotatingFileHandler(
            self.log_dir / f"{self.name}_errors.log", maxBytes=2*1024*1024, backupCount=3,
            encoding="utf-8"
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(StructuredFormatter(include_json=True))
        self.logger.addHandler(error_handler)
    def _log(self, level: int, message: str, category: Union[LogCategory, str, None] = None,
             exception: Optional[BaseException] = None, **kwargs):
        if isinstance(category, LogCategory):
            category_name = category.name
        elif category:
            category_name = str(category).upper()
        else:
            category_name = 'GENERAL'
        extra = {'run_id': self.run_id, 'category': category_name}
        for key, value in kwargs.items():
            if not key.startswith('_'):
                extra[f'field_{key}'] = value
        if exception is not None:
            self.logger.log(level, message, exc_info=(type(exception), exception, exception.__traceback__), extra=extra)
        else:
            self.logger.log(level, message, extra=extra)
    def trace(self, message: str, category: Union[LogCategory, str, None] = None, **kwargs):
        self._log(LogLevel.TRACE.value, message, category, **kwargs)
    def debug(self, message: str, category: Union[LogCategory, str, None] = None, **kwargs):
        self._log(LogLevel.DEBUG.value, message, category, **kwargs)
    def info(self, message: str, category: Union[LogCategory, str, None] = None, **kwargs):
        self._log(LogLevel.INFO.value, message, category, **kwargs)
    def warning(self, message: str, category: Union[LogCategory, str, None] = None,
                exception: Optional[BaseException] = None, **kwargs):
        self._log(LogLevel.WARNING.value, message, category, exception, **kwargs)
    def error(self, message: str, exception: Optional[BaseException] = None,
              category: Union[LogCategory, str, None] = None, **kwargs):
        self._log(LogLevel.ERROR.value, message, category, exception, **kwargs)
    def critical(self, message: str, exception: Optional[BaseException] = None,
                 category: Union[LogCategory, str, None] = None, **kwargs):
        self._log(LogLevel.CRITICAL.value, message, category, exception, **kwargs)
    def log_user_action(self, action: str, details: Optional[Dict[str, Any]] = None):
        """Record a user command (start, pause, ...)."""
        log_data = {'action': action, 'timestamp': time.time()}
        if details:
            log_data.update(details)
        self._log(LogLevel.INFO.value, f"USER ACTION: {action}",
                  LogCategory.USER_ACTION, **log_data)
    def log_gps_event(self, event_type: str, latitude: Optional[float] = None,
                      longitude: Optional[float] = None, **kwargs):
        """Record a position source event at DEBUG; samples arrive every second."""
        gps_data = {'event_type': event_type}
        if latitude is not None:
            gps_data['latitude'] = latitude
        if longitude is not None:
            gps_data['longitude'] = longitude
        gps_data.update(kwargs)
        self._log(LogLevel.DEBUG.value, f"GPS: {event_type}", LogCategory.GPS, **gps_data)
    def log_network_event(self, event_type: str, **kwargs):
        self._log(LogLevel.INFO.value, f"NETWORK: {event_type}",
                  LogCategory.NETWORK, event_type=event_type, **kwargs)
    def log_session_event(self, event_type: str, **kwargs):
        self._log(LogLevel.INFO.value, f"SESSION: {event_type}",
                  LogCategory.SESSION, event_type=event_type, **kwargs)
    @contextmanager
    def timer(self, operation: str, category: LogCategory = LogCategory.SYSTEM):
        """Log the wall time spent inside the block at DEBUG."""
        start_time = time.perf_counter()
        try:
            yield
        finally:
            duration = time.perf_counter() - start_time
            self.debug(f"{operation} took {duration * 1000:.2f}ms",
                       category=category, operation=operation, duration=duration)
    def get_run_id(self) -> str:
        return self.run_id
    def set_log_level(self, level: Union[str, int, LogLevel]):
        """Set the logging level of the underlying logger."""
        if isinstance(level, LogLevel):
            level = level.value
        elif isinstance(level, str):
            level = getattr(logging, level.upper())
        self.logger.setLevel(level)
        self.info(f"Log level set to: {logging.getLevelName(level)}", category=LogCategory.SYSTEM)
_global_logger: Optional[FitTrackLogger] = None
def get_logger() -> FitTrackLogger:
    """Get the global logger instance."""
    global _global_logger
    if _global_logger is None:
        _global_logger = FitTrackLogger()
    return _global_logger
def setup_logger(name: str = "fittrack", log_dir: Optional[Path] = None) -> FitTrackLogger:
    """Set up and return the global logger."""
    global _global_logger
    _global_logger = FitTrackLogger(name, log_dir)
    return _global_logger
class LoggableMixin:
    """Mixin that prefixes log lines with the owning class name."""
    def __init__(self):
        self._logger = get_logger()
        self._module_name = self.__class__.__name__
    def log_trace(self, message: str, **kwargs):
        self._logger.trace(f"[{self._module_name}] {message}", **kwargs)
    def log_debug(self, message: str, **kwargs):
        self._logger.debug(f"[{self._module_name}] {message}", **kwargs)
    def log_info(self, message: str, **kwargs):
        self._logger.info(f"[{self._module_name}] {message}", **kwargs)
    def log_warning(self, message: str, **kwargs):
        self._logger.warning(f"[{self._module_name}] {message}", **kwargs)
    def log_error(self, message: str, exception: Optional[BaseException] = None, **kwargs):
        self._logger.error(f"[{self._module_name}] {message}", exception=exception, **kwargs)
    def log_user_action(self, action: str, details: Optional[Dict[str, Any]] = None):
        action_details = {'module': self._module_name}
        if details:
            action_details.update(details)
        self._logger.log_user_action(action, action_details)
    def log_gps_event(self, event_type: str, latitude: Optional[float] = None,
                      longitude: Optional[float] = None, **kwargs):
        self._logger.log_gps_event(event_type, latitude, longitude,
                                   source=self._module_name, **kwargs)
    def log_network_event(self, event_type: str, **kwargs):
        self._logger.log_network_event(event_type, source=self._module_name, **kwargs)
    def log_session_event(self, event_type: str, **kwargs):
        self._logger.log_session_event(event_type, source=self._module_name, **kwargs)
