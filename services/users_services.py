import hmac
import logging
import traceback
from typing import Optional

from pymongo import errors

import env
from models.users import User, Session
from util.mongodb_utils import get_mongo_collection
from util.models_utils import to_document
from util.security_utils import get_password_hash, verify_password

logger = logging.getLogger(__name__)

ADMIN_BYPASS_ID = "admin"


class SignupValidationError(ValueError):
    pass


class EmailAlreadyRegisteredError(Exception):
    pass


class InvalidCredentialsError(Exception):
    def __init__(self, message="Invalid email or password"):
        super().__init__(message)


class AuthorizationError(Exception):
    def __init__(self, message="Not authorized for this account type"):
        super().__init__(message)


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def session_for_user(user: dict) -> Session:
    return Session(
        id=str(user["_id"]),
        name=user.get("name", ""),
        email=user["email"],
        role=user.get("role", "user"),
    )


def register_user(name: Optional[str], email: Optional[str], password: Optional[str]) -> dict:
    """
    Create a user account.

    The first account registered while the users collection is empty becomes
    an admin; every later account gets the "user" role.

    Returns:
        dict: The public view of the new user ({id, name, email, role})

    Raises:
        SignupValidationError: if a field is missing
        EmailAlreadyRegisteredError: if the lower-cased email is taken
    """
    if not name or not name.strip() or not email or not email.strip() or not password:
        raise SignupValidationError("Please provide all required fields")

    users_coll = get_mongo_collection(collection_name="users")
    email_normalized = normalize_email(email)

    if users_coll.find_one({"email": email_normalized}, {"_id": 1}):
        raise EmailAlreadyRegisteredError("Email already registered")

    role = "admin" if users_coll.count_documents({}) == 0 else "user"
    user = User(
        name=name.strip(),
        email=email_normalized,
        password=get_password_hash(password),
        role=role,
    )

    try:
        result = users_coll.insert_one(to_document(user))
    except errors.DuplicateKeyError:
        # Lost a race against a concurrent signup with the same email
        raise EmailAlreadyRegisteredError("Email already registered")

    # Concurrent first signups: only the oldest admin keeps the role
    if role == "admin" and users_coll.find_one(
        {"role": "admin", "_id": {"$lt": result.inserted_id}}, {"_id": 1}
    ):
        role = "user"
        user.role = role
        users_coll.update_one({"_id": result.inserted_id}, {"$set": {"role": role}})

    logger.info(f"Registered user {email_normalized} with role '{role}'")
    return {"id": str(result.inserted_id), "name": user.name, "email": user.email, "role": user.role}


def _is_admin_bypass(email: str, password: str) -> bool:
    if not env.ADMIN_EMAIL or not env.ADMIN_PASSWORD:
        return False
    return email == normalize_email(env.ADMIN_EMAIL) and hmac.compare_digest(password.encode(), env.ADMIN_PASSWORD.encode())


def authenticate(email: Optional[str], password: Optional[str]) -> Session:
    """
    Verify credentials and return the session claims to sign.

    Checks the configured admin bypass pair first, then the stored users.
    A stored account using the configured admin email must itself hold the
    admin role.

    Raises:
        InvalidCredentialsError: for missing or wrong credentials, or when
            the users collection cannot be read
        AuthorizationError: when the credentials are valid but the account
            lacks the role its email requires
    """
    if not email or not password:
        logger.info("Login rejected: missing credentials")
        raise InvalidCredentialsError()

    email_normalized = normalize_email(email)

    if _is_admin_bypass(email_normalized, password):
        logger.info(f"Admin bypass login for {email_normalized}")
        return Session(id=ADMIN_BYPASS_ID, name="Admin", email=email_normalized, role="admin")

    try:
        users_coll = get_mongo_collection(collection_name="users")
        user = users_coll.find_one({"email": email_normalized})
    except Exception as e:
        logger.error(f"Error looking up user {email_normalized}: {e}")
        logger.error(traceback.format_exc())
        raise InvalidCredentialsError() from e

    if not user or not verify_password(password, user.get("password", "")):
        logger.info(f"Login rejected for {email_normalized}")
        raise InvalidCredentialsError()

    if env.ADMIN_EMAIL and email_normalized == normalize_email(env.ADMIN_EMAIL) and user.get("role") != "admin":
        logger.warning(f"Account {email_normalized} uses the admin email but is not an admin")
        raise AuthorizationError()

    logger.info(f"User {email_normalized} logged in with role '{user.get('role', 'user')}'")
    return session_for_user(user)
