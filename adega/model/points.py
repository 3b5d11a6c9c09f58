# --- adega/model/points.py ---
from sqlalchemy.sql import func
from ..extensions import db

class UserPoints(db.Model):
    __tablename__ = "user_points"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id", ondelete="CASCADE"), unique=True, nullable=False, index=True)
    points = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

class PointsHistory(db.Model):
    """Append-only; rows are never updated or deleted by the application."""
    __tablename__ = "points_history"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    points = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, server_default=func.now(), index=True)

    def as_api(self):
        return {
            "id": self.id,
            "points": self.points,
            "description": self.description,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
