from typing import cast

from dependency_injector import containers, providers

from app.controllers.container import ControllerContainer
from app.repos.container import RepoContainer

# Modules resolving ``Provide[...]`` markers at request time.
WIRED_PACKAGES = ["app.api.v1"]
WIRED_MODULES = ["app.api.middlewares.authentication"]


class ApplicationContainer(containers.DeclarativeContainer):
    repos: RepoContainer = cast(RepoContainer, providers.Container(RepoContainer))
    controllers: ControllerContainer = cast(ControllerContainer, providers.Container(ControllerContainer, repos=repos))


def get_wire_container() -> ApplicationContainer:
    application_container = ApplicationContainer()

    application_container.wire(packages=WIRED_PACKAGES, modules=WIRED_MODULES)

    return application_container


async def close_container(container: ApplicationContainer) -> None:
    """Release the shared Google HTTP session, if one was ever opened."""
    google_http = container.controllers.google_http()
    await google_http.close_session()
