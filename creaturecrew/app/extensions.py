"""
extensions.py — Flask extension singletons.

`db` is created here with no app attached and bound inside the app factory
via db.init_app(app), so tests can build isolated app instances.

    from creaturecrew.app.extensions import db

Services never import `db`; they receive `db.session` from the route as a
plain SQLAlchemy Session argument.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
