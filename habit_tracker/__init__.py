from .app import create_app
from .models import db

__all__ = ["create_app", "db"]
