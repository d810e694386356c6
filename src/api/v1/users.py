"""The users resource: list and create."""

from fastapi import APIRouter

from src.api.schemas.users import NewUser, UserList, UserOut
from src.infrastructure.database.dependencies import Users

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=UserList)
async def list_users(users: Users) -> UserList:
    """Return every stored user inside a ``data`` envelope."""
    rows = await users.list_all()
    return UserList(data=[UserOut.model_validate(row) for row in rows])


@router.post("", response_model=UserOut)
async def create_user(payload: NewUser, users: Users) -> UserOut:
    """Store a new user and return it with its generated id."""
    user = await users.add(email=str(payload.email), name=payload.name)
    await users.commit()
    return UserOut.model_validate(user)
