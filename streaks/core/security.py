from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from fastapi.security import HTTPBearer


bearer_scheme = HTTPBearer(auto_error=False)


def extract_bearer_token(credentials: HTTPAuthorizationCredentials | None) -> str:
    """Return the GitHub token sent as `Authorization: Bearer <token>`.

    Raises:
        HTTPException: 401 if the header is missing, not Bearer, or blank.
    """

    if (
        credentials is None
        or credentials.scheme.lower() != "bearer"
        or not credentials.credentials.strip()
    ):
        raise HTTPException(
            status_code=401,
            detail="Authorization Bearer token is required",
        )

    return credentials.credentials.strip()
