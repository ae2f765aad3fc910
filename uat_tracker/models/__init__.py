"""
UAT Tracker
Database models package.

`db` is the shared Flask-SQLAlchemy handle; table classes live in
``uat_tracker.models.uat`` and plain entity records in
``uat_tracker.models.records``.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
