"""HTTP routes."""

from .api import base, blueprint
