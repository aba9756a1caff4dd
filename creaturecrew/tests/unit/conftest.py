"""
tests/unit/conftest.py

Unit tests build model instances without an app or database. Importing every
model module here lets SQLAlchemy resolve the string-named relationships no
matter which test module runs first.
"""

from creaturecrew.app.models import (  # noqa: F401
    group,
    membership,
    refresh_token,
    task,
    user,
)
