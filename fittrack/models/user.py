# fittrack/models/user.py
import re
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import validates
from werkzeug.security import check_password_hash, generate_password_hash

from .. import db

# Integer ids on SQLite must be plain INTEGER to autoincrement
BigId = db.BigInteger().with_variant(db.Integer, "sqlite")
MAX_ID = 2**63 - 1

EMAIL_RE = re.compile(r"^\w+([.+-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,})+$")


def parse_id(raw) -> Optional[int]:
    """Positive ASCII integer id, or None when `raw` is not one."""
    text = "" if raw is None else str(raw).strip()
    if not (text.isascii() and text.isdigit()):
        return None
    value = int(text)
    return value if value > 0 else None


def get_by_id(model, raw):
    """`db.session.get` that treats malformed or out-of-range ids as missing."""
    value = parse_id(raw)
    if value is None or value > MAX_ID:
        return None
    return db.session.get(model, value)


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(BigId, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    password_hash = db.Column(db.String(255))
    picture = db.Column(db.String(255))

    google_id = db.Column(db.String(255), unique=True)
    is_google_user = db.Column(db.Boolean, default=False, nullable=False)
    is_verified = db.Column(db.Boolean, default=False, nullable=False)
    login_method = db.Column(
        db.Enum("email", "google", name="login_method_enum"), nullable=False, default="email"
    )
    last_login = db.Column(db.DateTime, default=datetime.utcnow)

    # lockout
    failed_login_attempts = db.Column(db.Integer, default=0, nullable=False)
    locked_until = db.Column(db.DateTime)

    verification_code = db.Column(db.String(6))
    verification_expires = db.Column(db.DateTime)
    reset_password_token = db.Column(db.String(64), index=True)
    reset_password_expires = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    workouts = db.relationship("Workout", back_populates="user")

    @validates("email")
    def _normalize_email(self, key, value):
        value = (value or "").strip().lower()
        if not EMAIL_RE.match(value):
            raise ValueError("Please enter a valid email")
        return value

    @validates("name")
    def _normalize_name(self, key, value):
        value = (value or "").strip()
        if not value:
            raise ValueError("Name is required")
        if len(value) > 100:
            raise ValueError("Name cannot exceed 100 characters")
        return value

    # -----------------------------
    # Passwords
    # -----------------------------
    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    # -----------------------------
    # Lockout
    # -----------------------------
    def is_locked(self, now=None) -> bool:
        now = now or datetime.utcnow()
        return self.locked_until is not None and self.locked_until > now

    def register_failed_login(self, max_attempts: int, lockout_minutes: int) -> bool:
        """
        Count a failed password attempt.
        Returns True when this attempt locked the account.
        """
        self.failed_login_attempts = int(self.failed_login_attempts or 0) + 1
        if self.failed_login_attempts >= max_attempts:
            self.locked_until = datetime.utcnow() + timedelta(minutes=lockout_minutes)
            self.failed_login_attempts = 0
            return True
        return False

    def reset_login_failures(self) -> None:
        self.failed_login_attempts = 0
        self.locked_until = None

    def touch_last_login(self) -> None:
        self.last_login = datetime.utcnow()

    # -----------------------------
    # Email verification
    # -----------------------------
    def issue_verification_code(self, ttl_minutes: int) -> str:
        self.verification_code = str(100000 + secrets.randbelow(900000))
        self.verification_expires = datetime.utcnow() + timedelta(minutes=ttl_minutes)
        return self.verification_code

    def verification_pending(self) -> bool:
        return bool(self.verification_code and self.verification_expires)

    def verification_expired(self) -> bool:
        return self.verification_expires is not None and datetime.utcnow() > self.verification_expires

    def clear_verification(self, verified: bool = True) -> None:
        self.verification_code = None
        self.verification_expires = None
        if verified:
            self.is_verified = True

    # -----------------------------
    # Password reset
    # -----------------------------
    def issue_reset_token(self, ttl_minutes: int) -> str:
        self.reset_password_token = secrets.token_hex(32)
        self.reset_password_expires = datetime.utcnow() + timedelta(minutes=ttl_minutes)
        return self.reset_password_token

    def clear_reset_token(self) -> None:
        self.reset_password_token = None
        self.reset_password_expires = None

    # -----------------------------
    # Lookups
    # -----------------------------
    @classmethod
    def find_by_email(cls, email):
        if not email:
            return None
        return cls.query.filter_by(email=email.strip().lower()).first()

    @classmethod
    def find_by_google_id(cls, google_id):
        if not google_id:
            return None
        return cls.query.filter_by(google_id=google_id).first()

    @classmethod
    def find_by_reset_token(cls, token):
        if not token:
            return None
        return cls.query.filter(
            cls.reset_password_token == token,
            cls.reset_password_expires > datetime.utcnow(),
        ).first()

    @classmethod
    def create_google_user(cls, profile):
        """
        Link a Google profile to an existing email account, or create a new
        Google user. `profile` carries id, email, name and picture.
        The caller commits.
        """
        existing = cls.find_by_email(profile["email"])
        if existing:
            if not existing.google_id:
                existing.google_id = profile["id"]
                existing.is_google_user = True
                existing.picture = profile.get("picture") or existing.picture
                existing.is_verified = True
            return existing

        user = cls(
            email=profile["email"],
            name=profile["name"],
            picture=profile.get("picture"),
            google_id=profile["id"],
            is_google_user=True,
            is_verified=True,
            login_method="google",
        )
        db.session.add(user)
        return user

    @classmethod
    def user_stats(cls):
        start_of_today = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
        row = db.session.query(
            func.count(cls.id),
            func.sum(case((cls.is_google_user.is_(True), 1), else_=0)),
            func.sum(case((cls.is_google_user.is_(True), 0), else_=1)),
            func.sum(case((cls.is_verified.is_(True), 1), else_=0)),
            func.sum(case((cls.last_login >= start_of_today, 1), else_=0)),
        ).one()

        return {
            "total_users": int(row[0] or 0),
            "google_users": int(row[1] or 0),
            "email_users": int(row[2] or 0),
            "verified_users": int(row[3] or 0),
            "active_today": int(row[4] or 0),
        }

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "picture": self.picture,
            "login_method": self.login_method,
            "is_verified": self.is_verified,
            "is_google_user": self.is_google_user,
            "has_password": self.has_password,
            "last_login": self.last_login.isoformat() if self.last_login else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
