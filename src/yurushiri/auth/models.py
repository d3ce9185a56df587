"""Authentication models"""

from typing import Optional

from pydantic import BaseModel


class AuthUser(BaseModel):
    """Principal returned by the auth service"""

    id: str
    email: Optional[str] = None

    @property
    def initial(self) -> str:
        return (self.email or "U")[0].upper()


class AuthTokens(BaseModel):
    """Session tokens stored in the signed session cookie"""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


class SignInResult(BaseModel):
    user: AuthUser
    tokens: AuthTokens


class SignUpResult(BaseModel):
    user: Optional[AuthUser] = None
    # Present only when the project does not require e-mail confirmation
    tokens: Optional[AuthTokens] = None
