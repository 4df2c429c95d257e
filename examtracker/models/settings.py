"""
Site-wide settings

Settings live in the system_settings table and are reached through a
SettingsStore created by the application factory, never through a module
level mutable object.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from flask import current_app
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from examtracker.utils.db import get_db
from examtracker.models.database_models import SystemSettings

logger = logging.getLogger(__name__)

SETTINGS_KEY = 'site_settings'
BACKUP_KEY = 'site_settings_backup'


class FeatureFlags(BaseModel):
    """Toggles for the optional parts of the platform"""
    model_config = ConfigDict(extra='forbid')

    blogging: bool = True
    exam_tracking: bool = True
    study_materials: bool = True
    teacher_student_connect: bool = True
    messaging: bool = True
    analytics: bool = True


class SiteSettings(BaseModel):
    """Validated site configuration"""
    model_config = ConfigDict(extra='forbid')

    site_name: str = Field('SSC Exam Tracker', max_length=100)
    site_description: str = 'Your comprehensive platform for SSC exam preparation'
    maintenance_mode: bool = False
    registration_enabled: bool = True
    max_upload_size: int = Field(10, ge=1, le=100, description="Maximum upload size in MB")
    allowed_file_types: List[str] = Field(default_factory=lambda: ['pdf', 'doc', 'docx', 'jpg', 'png'])
    email_notifications: bool = True
    auto_backup: bool = True
    max_users_per_teacher: int = Field(50, ge=1, le=500)
    exam_reminder_days: int = Field(3, ge=0, le=30)
    study_streak_rewards: bool = True
    version: str = '1.0.0'
    last_updated: Optional[datetime] = None
    features: FeatureFlags = Field(default_factory=FeatureFlags)


CATEGORIES: Dict[str, tuple] = {
    'general': ('site_name', 'site_description', 'maintenance_mode', 'version'),
    'user': ('registration_enabled', 'max_users_per_teacher', 'study_streak_rewards'),
    'upload': ('max_upload_size', 'allowed_file_types'),
    'features': ('features',),
}

# Fields that are maintained by the store itself
READ_ONLY_FIELDS = ('version', 'last_updated')


class SettingsValidationError(ValueError):
    """Raised when a settings change does not validate"""

    def __init__(self, details: List[str]):
        self.details = details
        super().__init__('Validation failed: ' + '; '.join(details))


def _format_errors(error: ValidationError) -> List[str]:
    details = []
    for item in error.errors():
        location = '.'.join(str(part) for part in item['loc'])
        details.append(f"{location}: {item['msg']}")
    return details


class SettingsStore:
    """Loads and persists SiteSettings through the request database session"""

    def __init__(self, key: str = SETTINGS_KEY):
        self.key = key

    def _row(self, key: str = None):
        db = get_db()
        return db.query(SystemSettings).filter(SystemSettings.key == (key or self.key)).first()

    def _save(self, settings: SiteSettings, admin_uid: Optional[str]) -> SiteSettings:
        db = get_db()
        settings = settings.model_copy(update={'last_updated': datetime.utcnow()})
        try:
            row = self._row()
            payload = settings.model_dump(mode='json')
            if row:
                row.value = payload
                row.updated_at = datetime.utcnow()
                row.updated_by = admin_uid
            else:
                db.add(SystemSettings(
                    key=self.key,
                    value=payload,
                    description='Site-wide settings',
                    updated_by=admin_uid
                ))
            db.commit()
            return settings
        except Exception as e:
            logger.error(f"Error saving settings: {str(e)}", exc_info=True)
            db.rollback()
            raise

    def load(self) -> SiteSettings:
        """Current settings, defaults when nothing has been stored yet"""
        row = self._row()
        if row is None:
            return SiteSettings()
        return SiteSettings.model_validate(row.value)

    def category(self, name: Optional[str]) -> Dict[str, Any]:
        """Settings restricted to one category; unknown or empty names return everything"""
        data = self.load().model_dump(mode='json')
        fields = CATEGORIES.get(name or '')
        if fields is None:
            return data
        return {field: data[field] for field in fields}

    def update(self, changes: Dict[str, Any], admin_uid: Optional[str] = None) -> SiteSettings:
        """Merge and validate changes, then persist them"""
        blocked = [field for field in changes if field in READ_ONLY_FIELDS]
        if blocked:
            raise SettingsValidationError([f"{field}: read-only" for field in blocked])

        merged = self.load().model_dump()
        for field, value in changes.items():
            if field == 'features' and isinstance(value, dict):
                merged['features'] = {**merged['features'], **value}
            else:
                merged[field] = value

        try:
            settings = SiteSettings.model_validate(merged)
        except ValidationError as e:
            raise SettingsValidationError(_format_errors(e))

        saved = self._save(settings, admin_uid)
        logger.info(f"Settings updated by admin {admin_uid}: {sorted(changes)}")
        return saved

    def reset(self, admin_uid: Optional[str] = None) -> SiteSettings:
        logger.info(f"Settings reset to defaults by admin {admin_uid}")
        return self._save(SiteSettings(), admin_uid)

    def reset_key(self, key: str, admin_uid: Optional[str] = None) -> SiteSettings:
        """Put one setting back to its default"""
        if key not in SiteSettings.model_fields or key in READ_ONLY_FIELDS:
            raise SettingsValidationError([f"{key}: invalid setting key"])
        current = self.load()
        default = getattr(SiteSettings(), key)
        return self._save(current.model_copy(update={key: default}), admin_uid)

    def reset_category(self, name: str, admin_uid: Optional[str] = None) -> SiteSettings:
        """Put every setting of a category back to its default"""
        fields = CATEGORIES.get(name)
        if fields is None:
            raise SettingsValidationError([f"{name}: invalid category"])
        defaults = SiteSettings()
        updates = {field: getattr(defaults, field) for field in fields if field not in READ_ONLY_FIELDS}
        return self._save(self.load().model_copy(update=updates), admin_uid)

    def backup(self, admin_uid: Optional[str] = None) -> Dict[str, Any]:
        """Store a copy of the current settings and return it"""
        backup = {
            'timestamp': datetime.utcnow().isoformat(),
            'settings': self.load().model_dump(mode='json'),
            'admin_id': admin_uid,
        }
        db = get_db()
        try:
            row = self._row(BACKUP_KEY)
            if row:
                row.value = backup
                row.updated_by = admin_uid
            else:
                db.add(SystemSettings(key=BACKUP_KEY, value=backup,
                                      description='Last settings backup', updated_by=admin_uid))
            db.commit()
        except Exception as e:
            logger.error(f"Error backing up settings: {str(e)}", exc_info=True)
            db.rollback()
            raise
        logger.info(f"Settings backup created by admin {admin_uid}")
        return backup


def get_settings_store() -> SettingsStore:
    """The store registered on the running application"""
    return current_app.extensions['settings_store']
