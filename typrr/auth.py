"""
Caller identity.

Authentication itself lives outside the engine. The server only needs
something that turns a bearer token into a user id.
"""

from typing import Dict, Optional

from .errors import AuthenticationError


class Authenticator:
    def user_id(self, token: str) -> Optional[str]:
        raise NotImplementedError

    def authenticate(self, authorization: Optional[str]) -> str:
        """Resolve an Authorization header or raise AuthenticationError."""
        if not authorization or not authorization.startswith("Bearer "):
            raise AuthenticationError("unauthorized - no token")
        user_id = self.user_id(authorization[len("Bearer "):].strip())
        if not user_id:
            raise AuthenticationError("unauthorized - invalid token")
        return user_id


class StaticTokenAuthenticator(Authenticator):
    """Fixed token table, for development and tests."""

    def __init__(self, tokens: Dict[str, str]):
        self.tokens = dict(tokens)

    @classmethod
    def from_string(cls, table: str) -> "StaticTokenAuthenticator":
        """Parse "token:user_id,token2:user_id2"."""
        tokens = {}
        for pair in table.split(","):
            if ":" in pair:
                token, user_id = pair.split(":", 1)
                tokens[token.strip()] = user_id.strip()
        return cls(tokens)

    def user_id(self, token: str) -> Optional[str]:
        return self.tokens.get(token)
