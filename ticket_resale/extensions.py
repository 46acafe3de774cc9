from flask_sqlalchemy import SQLAlchemy
from flask_jwt_extended import JWTManager

db = SQLAlchemy()
jwt = JWTManager()

# Revoked token ids. Process-local, so a logout only sticks on this worker.
BLOCKLIST = set()
