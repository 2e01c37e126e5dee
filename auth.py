# machine_efficiency/auth.py
"""Authentication capability and session context handling"""
from typing import Optional, List, Dict, Protocol
import logging

from fastapi import Depends, Request

from config import app_config
from models import User, UserContext
from store_client import SheetStoreClient, get_store_client

logger = logging.getLogger(__name__)

# Page id -> access name used in the users sheet
PAGES: Dict[str, str] = {
    'dashboard': 'dashboard',
    'entry': 'data entry',
    'records': 'records',
}

PAGE_LABELS: Dict[str, str] = {
    'dashboard': 'Dashboard',
    'entry': 'Data Entry',
    'records': 'View Records',
}


class InvalidCredentials(Exception):
    """Raised for any login failure that is not a store error"""

    def __init__(self):
        super().__init__("Invalid username or password")


class Authenticator(Protocol):
    """Capability interface for verifying credentials"""

    def authenticate(self, username: str, password: str) -> User:
        ...


class RemoteUserListAuthenticator:
    """
    Checks credentials against the user list held in the spreadsheet.

    Passwords are compared in plaintext. Swap this class out through
    get_authenticator to change the verification scheme.
    """

    def __init__(self, store: SheetStoreClient):
        self.store = store

    def authenticate(self, username: str, password: str) -> User:
        envelope = self.store.list_users()
        username = (username or '').strip()
        for row in envelope.data:
            user = User.from_dict(row)
            if user.username == username and user.password == password:
                logger.info(f"Login succeeded for {username}")
                return user
        logger.warning(f"Login rejected for {username!r}")
        raise InvalidCredentials()


def get_authenticator(store: SheetStoreClient = Depends(get_store_client)) -> Authenticator:
    """FastAPI dependency returning the active authenticator"""
    return RemoteUserListAuthenticator(store)


def parse_allowed_pages(access: Optional[str]) -> List[str]:
    """Split a comma-separated access string into trimmed lower-case names"""
    if not access:
        return []
    return [part.strip().lower() for part in access.split(',') if part.strip()]


def build_context(user: User) -> UserContext:
    return UserContext(
        username=user.username,
        role=user.role,
        firm_name=user.firm_name,
        allowed_pages=parse_allowed_pages(user.access),
        is_admin=user.role == app_config.admin_role,
    )


def navigable_pages(context: Optional[UserContext]) -> List[str]:
    """Page ids the user may open, in menu order"""
    if context is None:
        return []
    return [page for page, access in PAGES.items() if context.can_view(access)]


# Session lifecycle: created at login, read per request, destroyed at logout
def start_session(request: Request, context: UserContext) -> None:
    request.session[app_config.session_key] = context.to_dict()


def end_session(request: Request) -> None:
    request.session.pop(app_config.session_key, None)


def current_context(request: Request) -> Optional[UserContext]:
    """FastAPI dependency restoring the context from the signed session cookie"""
    data = request.session.get(app_config.session_key)
    if not data:
        return None
    try:
        return UserContext.from_dict(data)
    except (TypeError, AttributeError) as e:
        logger.warning(f"Discarding unreadable session: {e}")
        end_session(request)
        return None
