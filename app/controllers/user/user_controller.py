import logging

from app.controllers.auth.token_controller import TokenController
from app.exceptions import InvalidDataError
from app.models import User
from app.repos.user import UserRepo


class UserController:
    """Controller for the signed-in user's own profile and account."""

    def __init__(self, user_repo: UserRepo, token_controller: TokenController) -> None:
        self._logger = logging.getLogger(__name__)
        self._user_repo = user_repo
        self._token_controller = token_controller

    async def update_profile(self, user: User, name: str | None = None, picture: str | None = None) -> User:
        values: dict[str, str] = {}
        if name is not None:
            if not name.strip():
                raise InvalidDataError("Name is required and cannot be empty")
            values["name"] = name.strip()
        if picture is not None:
            values["picture"] = picture.strip()
        if not values:
            raise InvalidDataError("Nothing to update; provide name or picture")

        return await self._user_repo.update(user, values)

    async def logout(self, user: User) -> None:
        """Revoke the Google grant (best effort) and forget the stored tokens. Never fails on revocation."""
        revoked = await self._token_controller.revoke(user)
        self._logger.info(f"User logged out; user_id: {user.id}, remote_revoked: {revoked}")

    async def delete_account(self, user: User) -> None:
        """Soft delete: revoke, clear credentials and deactivate. Mirrored messages are kept."""
        await self._token_controller.revoke(user)
        await self._user_repo.deactivate(user)
        self._logger.info(f"User account deactivated; user_id: {user.id}")

    async def purge(self, user: User) -> int:
        """Hard delete the user together with every message it owns."""
        await self._token_controller.revoke(user)
        removed = await self._user_repo.hard_delete(user)
        self._logger.info(f"User purged; user_id: {user.id}, emails_removed: {removed}")
        return removed
