from datetime import datetime, timezone
from sqlalchemy import Uuid
from app.extensions import db

class BlacklistedToken(db.Model):
    """A revoked JWT, keyed by its jti until it would have expired anyway."""
    __tablename__ = 'revoked_tokens'

    id = db.Column(db.Integer, primary_key=True)
    jti = db.Column(db.String(64), unique=True, nullable=False, index=True)
    token_type = db.Column(db.String(10), nullable=False, default="access")
    user_id = db.Column(Uuid(as_uuid=True), db.ForeignKey('users.id'), nullable=True, index=True)
    expires_at = db.Column(db.DateTime, nullable=True)
    revoked_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f"<BlacklistedToken {self.jti} ({self.token_type})>"
