"""Platform routes."""

from custodian.routes.telegram_routes import TelegramRoutes

__all__ = ["TelegramRoutes"]
