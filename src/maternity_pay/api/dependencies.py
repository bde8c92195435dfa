"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from maternity_pay.database import init_db
from maternity_pay.services.case_service import MaternityCaseService

DEFAULT_ACTOR = "system"


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_actor(x_user_id: Annotated[str | None, Header()] = None) -> str:
    """Identify the user for audit stamping."""
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return DEFAULT_ACTOR


async def get_expected_version(
    if_match: Annotated[str | None, Header()] = None
) -> int | None:
    """Extract the case version the client last saw from If-Match."""
    if if_match is None:
        return None
    value = if_match.strip()
    if value.startswith("W/"):
        value = value[2:]
    value = value.strip('"')
    try:
        return int(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid If-Match version",
        )


async def get_case_service(
    db: Annotated[AsyncSession, Depends(get_db_session)]
) -> MaternityCaseService:
    return MaternityCaseService(db)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Actor = Annotated[str, Depends(get_actor)]
ExpectedVersion = Annotated[int | None, Depends(get_expected_version)]
CaseService = Annotated[MaternityCaseService, Depends(get_case_service)]
