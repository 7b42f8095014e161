"""Stored publish-platform tokens.

Clients complete the OAuth flow themselves and store the resulting token
here; the publish adapters use it on the user's behalf.
"""

import logging

from fastapi import APIRouter, Response

from mvstudio.dependencies import CurrentUser, DBSession
from mvstudio.errors.exceptions import InvalidInputError, NotFoundError
from mvstudio.models.connection import ConnectionOut, ConnectionUpsert
from mvstudio.models.enums import PublishPlatform
from mvstudio.repositories.connection_repo import PlatformConnectionRepository
from mvstudio.services.id_generator import new_connection_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Connections"])


def _connection_out(row) -> dict:
    return ConnectionOut.model_validate(row).model_dump(mode="json")


@router.get("/connections")
async def list_connections(user: CurrentUser, db: DBSession) -> list[dict]:
    rows = await PlatformConnectionRepository(db).list_for_user(user["sub"])
    return [_connection_out(r) for r in rows]


@router.put("/connections/{platform}")
async def upsert_connection(
    platform: PublishPlatform,
    body: ConnectionUpsert,
    user: CurrentUser,
    db: DBSession,
) -> dict:
    if platform == PublishPlatform.FACEBOOK and not body.account_id:
        raise InvalidInputError("Facebook connections need the page id in account_id")

    repo = PlatformConnectionRepository(db)
    fields = body.model_dump()
    row = await repo.get_for_user(user["sub"], platform)
    if row is None:
        row = await repo.create(
            connection_id=new_connection_id(),
            user_id=user["sub"],
            platform=str(platform),
            **fields,
        )
    else:
        await repo.update(row, **fields)
    await db.commit()
    await db.refresh(row)
    logger.info("Stored %s connection for %s", platform, user["sub"])
    return _connection_out(row)


@router.delete("/connections/{platform}", status_code=204)
async def delete_connection(platform: PublishPlatform, user: CurrentUser, db: DBSession) -> Response:
    repo = PlatformConnectionRepository(db)
    row = await repo.get_for_user(user["sub"], platform)
    if row is None:
        raise NotFoundError("Connection", str(platform))
    await repo.delete(row)
    await db.commit()
    return Response(status_code=204)
