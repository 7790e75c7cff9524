"""
Vision Calling – SQLAlchemy ORM models package.

Imports all model classes so the app can discover them
through a single ``from app.models import *`` import.
"""

from app.models.user import User                          # noqa: F401
from app.models.message import Message                    # noqa: F401
from app.models.notification import PushNotification      # noqa: F401
