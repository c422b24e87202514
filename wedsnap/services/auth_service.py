"""Album owner accounts: registration and password login.

Guests never authenticate; only album owners hold tokens.
"""

from sqlmodel import Session, select

from wedsnap.models.user import User
from wedsnap.utils.security import create_access_token, hash_password, verify_password


def register_owner(email: str, password: str, display_name: str, session: Session) -> dict:
    """Create an owner account. Raises ValueError if the email is taken."""
    email = email.strip().lower()
    existing = session.exec(select(User).where(User.email == email)).first()
    if existing:
        raise ValueError("email_taken:Email already registered")

    user = User(
        email=email,
        display_name=display_name or email.split("@")[0],
        password_hash=hash_password(password),
    )
    session.add(user)
    session.commit()
    session.refresh(user)

    return {
        "user_id": user.id,
        "access_token": create_access_token(user.id),
        "display_name": user.display_name,
    }


def login_owner(email: str, password: str, session: Session) -> dict:
    """Verify credentials. Raises ValueError on mismatch."""
    user = session.exec(select(User).where(User.email == email.strip().lower())).first()
    if not user or not verify_password(password, user.password_hash):
        raise ValueError("invalid_credentials:Incorrect email or password")

    return {
        "user_id": user.id,
        "access_token": create_access_token(user.id),
        "display_name": user.display_name,
    }
