"""Payment persistence for the Adyen integration."""

from .db import Database

__all__ = ['Database']
