"""
Centralized logging utilities for the credential vault.
Provides consistent logging patterns and helper functions.
"""

import logging
from typing import Optional, Dict, Any


class AppLogger:
    """Centralized logger utility for consistent logging across the application."""

    def __init__(self, logger_name: str):
        """
        Initialize the app logger.

        Args:
            logger_name: Name of the logger (e.g., 'vault', 'core')
        """
        self.logger = logging.getLogger(logger_name)
        self.security_logger = logging.getLogger('django.security')
        self.alerts_logger = logging.getLogger('alerts')

    def info(self, message: str, owner_id: Optional[Any] = None, extra_data: Optional[Dict[str, Any]] = None):
        """Log an info message."""
        self._log('info', message, owner_id, extra_data)

    def warning(self, message: str, owner_id: Optional[Any] = None, extra_data: Optional[Dict[str, Any]] = None):
        """Log a warning message."""
        self._log('warning', message, owner_id, extra_data)

    def error(self, message: str, owner_id: Optional[Any] = None, extra_data: Optional[Dict[str, Any]] = None):
        """Log an error message."""
        self._log('error', message, owner_id, extra_data)

    def critical(self, message: str, owner_id: Optional[Any] = None, extra_data: Optional[Dict[str, Any]] = None):
        """Log a critical message and also send to alerts."""
        formatted_message, context = self._prepare_message(message, owner_id, extra_data)
        self.logger.critical(formatted_message, extra=context)
        self.alerts_logger.error(f"CRITICAL: {message}", extra=context)

    def security_event(self, message: str, owner_id: Optional[Any] = None, extra_data: Optional[Dict[str, Any]] = None):
        """Log a security-related event directly to security log."""
        formatted_message, context = self._prepare_message(f"SECURITY EVENT: {message}", owner_id, extra_data)
        self.security_logger.warning(formatted_message, extra=context)

    def user_activity(self, action: str, owner_id: Any, details: Optional[str] = None):
        """Log owner activity with consistent format."""
        message = f"Owner {owner_id if owner_id is not None else 'unknown'} performed action: {action}"
        if details:
            message += f" - {details}"
        self.info(message, owner_id)

    def _log(self, level: str, message: str, owner_id: Optional[Any] = None, extra_data: Optional[Dict[str, Any]] = None):
        formatted_message, context = self._prepare_message(message, owner_id, extra_data)
        getattr(self.logger, level)(formatted_message, extra=context)

    def _prepare_message(self, message: str, owner_id: Optional[Any], extra_data: Optional[Dict[str, Any]]):
        """Return the formatted message and the ``extra`` mapping for the record."""
        formatted_message = self._format_message(message, owner_id, extra_data)
        context: Dict[str, Any] = {}
        if owner_id is not None:
            context['owner_id'] = owner_id
        if extra_data:
            context.update(extra_data)
        if context:
            return formatted_message, {'context': context}
        return formatted_message, None

    def _format_message(self, message: str, owner_id: Optional[Any] = None, extra_data: Optional[Dict[str, Any]] = None):
        if owner_id is not None:
            formatted_message = f"[Owner: {owner_id}] {message}"
        else:
            formatted_message = message

        if extra_data:
            extra_info = ", ".join([f"{k}: {v}" for k, v in extra_data.items()])
            formatted_message += f" | Extra: {extra_info}"

        return formatted_message


# Convenience functions for getting loggers
def get_vault_logger():
    """Get the vault logger."""
    return AppLogger('vault')


def get_core_logger():
    """Get the core logger."""
    return AppLogger('core')


def get_security_logger():
    """Get a logger specifically for security events."""
    return AppLogger('django.security')
