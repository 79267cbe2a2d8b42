"""
Flask extensions initialization.
"""
from flask_compress import Compress
from flask_sqlalchemy import SQLAlchemy

# Database (read-only access to the analytics tables)
db = SQLAlchemy()

# Response compression
compress = Compress()
