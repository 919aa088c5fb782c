from typing import cast

from dependency_injector import containers, providers

from app.controllers.auth.authorization_controller import AuthorizationController
from app.controllers.auth.token_controller import TokenController
from app.controllers.email.email_controller import EmailController
from app.controllers.email.sync_controller import SyncController
from app.controllers.google.gmail_client import GmailClient
from app.controllers.google.http import GoogleHttpClient
from app.controllers.google.models import GoogleOAuthConfig
from app.controllers.google.oauth_client import GoogleOAuthClient
from app.controllers.user.user_controller import UserController
from app.repos.container import RepoContainer
from app.utils.session_token import SessionTokenSigner
from settings import settings


class ControllerContainer(containers.DeclarativeContainer):
    repos: RepoContainer = cast(RepoContainer, providers.DependenciesContainer())

    google_http = providers.Singleton(GoogleHttpClient, timeout=settings.google.request_timeout)
    google_oauth_config = providers.Singleton(GoogleOAuthConfig.from_settings)
    google_oauth_client = providers.Singleton(GoogleOAuthClient, config=google_oauth_config, http=google_http)
    gmail_client = providers.Singleton(GmailClient, http=google_http)

    session_token_signer = providers.Singleton(SessionTokenSigner.from_settings)

    token_controller = providers.Singleton(
        TokenController, user_repo=repos.user, oauth_client=google_oauth_client
    )

    authorization_controller = providers.Singleton(
        AuthorizationController,
        user_repo=repos.user,
        oauth_client=google_oauth_client,
        token_signer=session_token_signer,
    )

    sync_controller = providers.Singleton(
        SyncController,
        email_message_repo=repos.email_message,
        token_controller=token_controller,
        gmail_client=gmail_client,
        max_concurrent_fetches=settings.sync.max_concurrent_fetches,
    )

    email_controller = providers.Singleton(EmailController, email_message_repo=repos.email_message)

    user_controller = providers.Singleton(UserController, user_repo=repos.user, token_controller=token_controller)
