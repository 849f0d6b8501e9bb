import logging
import uuid
from datetime import datetime, timezone

from flask_jwt_extended import create_access_token, create_refresh_token, get_jwt_identity
from werkzeug.security import check_password_hash, generate_password_hash

from app.errors import AuthenticationError
from app.extensions import db
from models.blacklisted_token import BlacklistedToken
from models.profiles import Profile
from models.users import User

logger = logging.getLogger(__name__)


def current_user_id():
    """The authenticated subject as a UUID; call inside a jwt_required view."""
    identity = get_jwt_identity()
    try:
        return uuid.UUID(str(identity))
    except (TypeError, ValueError):
        raise AuthenticationError()


def create_tokens(user):
    access_token = create_access_token(identity=str(user.id))
    refresh_token = create_refresh_token(identity=str(user.id))
    return access_token, refresh_token


def refresh_access_token(identity):
    user = db.session.get(User, uuid.UUID(str(identity)))
    if not user or not user.is_active:
        return None
    return create_access_token(identity=str(user.id))


def logout_token(jwt_payload):
    """Revoke the presented token; later requests carrying it get a 401."""
    jti = jwt_payload["jti"]
    if BlacklistedToken.query.filter_by(jti=jti).first():
        return False

    expires = jwt_payload.get("exp")
    db.session.add(BlacklistedToken(
        jti=jti,
        token_type=jwt_payload.get("type", "access"),
        user_id=uuid.UUID(str(jwt_payload["sub"])),
        expires_at=datetime.fromtimestamp(expires, tz=timezone.utc) if expires else None
    ))
    db.session.commit()
    logger.info("Revoked %s token for user %s", jwt_payload.get("type", "access"), jwt_payload["sub"])
    return True


def is_token_revoked(jwt_payload):
    jti = jwt_payload["jti"]
    return BlacklistedToken.query.filter_by(jti=jti).first() is not None


def login_user(data):
    user = User.query.filter_by(email=data['email'].lower()).first()

    if user is None or not check_password_hash(user.password_hash, data['password']):
        return {
            'message': 'Invalid email or password.',
            'status': 401
        }

    if not user.is_active:
        return {'message': 'Account is inactive.', 'status': 403}

    user.last_login_at = datetime.now(timezone.utc)
    db.session.commit()

    access_token, refresh_token = create_tokens(user)
    logger.info("User %s logged in", user.id)

    return {
        'message': 'Login successful',
        'user': user.to_dict(),
        'access_token': access_token,
        'refresh_token': refresh_token,
        'status': 200
    }


def register_user(data):
    """Create the account and its profile row in one go."""
    email = data['email'].lower()

    if User.query.filter_by(email=email).first():
        return {
            'message': 'Email already exists.',
            'status': 409
        }

    new_user = User(
        email=email,
        full_name=data.get('full_name'),
        password_hash=generate_password_hash(data['password'])
    )
    db.session.add(new_user)
    db.session.flush()

    db.session.add(Profile(
        user_id=new_user.id,
        full_name=data.get('full_name'),
        phone=data.get('phone'),
        location=data.get('location'),
        farm_size=data.get('farm_size'),
        soil_type=data.get('soil_type')
    ))
    db.session.commit()
    logger.info("Registered user %s", new_user.id)

    return {
        'message': 'User registered successfully',
        'user_id': str(new_user.id),
        'status': 201
    }
