"""
Specialist Marketplace
Database models package.

Every model module imports ``db`` from here so that a single
Flask-SQLAlchemy instance is bound to the application in ``create_app``.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
