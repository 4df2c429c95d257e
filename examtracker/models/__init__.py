from .user_model import UserModel
from .message import MessageModel
from .settings import SiteSettings, SettingsStore, SettingsValidationError, get_settings_store

__all__ = ['UserModel', 'MessageModel', 'SiteSettings', 'SettingsStore', 'SettingsValidationError', 'get_settings_store']
