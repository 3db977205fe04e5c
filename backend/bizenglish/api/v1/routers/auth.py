# bizenglish/api/v1/routers/auth.py
from fastapi import APIRouter, HTTPException, Response, status, Depends
from bizenglish.core.security import verify_password, create_access_token, hash_password
from bizenglish.api.v1.deps import get_current_user
from bizenglish.models.user import User
from bizenglish.schemas.auth import LoginRequest, RegisterIn, UserOut

router = APIRouter(prefix="/auth", tags=["auth"])

def _user_out(user: User) -> dict:
    return UserOut(
        id=str(user.id),
        username=user.username,
        email=user.email,
        skillLevel=user.skill_level,
    ).model_dump()

@router.post("/register")
async def register(body: RegisterIn):
    """
    Register a new learner account.

    Creates a new user with the provided username, email (optional),
    password and CEFR skill level. The password is hashed before storage.
    Username and email must be unique across all users.

    Args:
        body: Request body containing:
            - username: str (must be unique)
            - email: str | None (optional, must be unique if provided)
            - password: str (will be hashed before storage)
            - skillLevel: CEFR level, default "B1"

    Returns:
        dict: Success response with user data, or error response:
            - success: bool
            - data: dict with id, username, email, skillLevel (if success)
            - error: dict with error code and message (if failure)

    Error codes:
        - BAD_REQUEST: Missing username or password
        - USERNAME_EXISTS: Username already taken
        - EMAIL_EXISTS: Email already registered
    """
    # Basic validation, avoid pydantic error becoming 500
    if not body.username or not body.password:
        return {"success": False, "error": {"code": "BAD_REQUEST", "message": "username/password required"}}
    # Check duplicates
    if await User.get_or_none(username=body.username):
        return {"success": False, "error": {"code": "USERNAME_EXISTS", "message": "Username already exists"}}
    if body.email and await User.get_or_none(email=body.email):
        return {"success": False, "error": {"code": "EMAIL_EXISTS", "message": "Email already registered"}}
    u = await User.create(
        username=body.username,
        email=(body.email or None),
        password_hash=hash_password(body.password),
        skill_level=body.skillLevel,
    )
    return {"success": True, "data": _user_out(u)}

@router.post("/login")
async def login(payload: LoginRequest, response: Response):
    """
    Authenticate user and create access token.

    The token is returned in the response body and also set as an HttpOnly
    cookie for browser-based clients.

    Raises:
        HTTPException (401): If credentials are invalid
    """
    user = await User.get_or_none(username=payload.username)
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail={"code":"AUTH_INVALID_CREDENTIALS","message":"Incorrect username or password"})
    token = create_access_token(str(user.id))
    response.set_cookie("accessToken", token, httponly=True, secure=False, samesite="lax")
    return {"success": True, "data": {"user": _user_out(user), "accessToken": token}}

@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    """Current authenticated user (id, username, email, skillLevel)."""
    return {"success": True, "data": _user_out(user)}

@router.post("/logout")
async def logout(response: Response):
    """
    Log out the current user by clearing the access token cookie.

    Note:
        This endpoint only clears the cookie. The JWT token itself remains
        valid until it expires.
    """
    response.delete_cookie("accessToken")
    return {"success": True}
