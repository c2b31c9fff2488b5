# Overview: Flask extension instances for the working tables and the durable record.

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
