from dependency_injector import containers, providers

from app.repos.email_message import EmailMessageRepo
from app.repos.user import UserRepo


class RepoContainer(containers.DeclarativeContainer):
    user = providers.Singleton(UserRepo)
    email_message = providers.Singleton(EmailMessageRepo)
