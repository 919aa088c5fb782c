from cryptography.fernet import Fernet

from settings import settings

cipher_suite = Fernet(settings.token_encryption_key.encode())


class TokenCipher:
    """Reversible encryption for OAuth tokens at rest. Tokens must come back byte-identical."""

    @staticmethod
    def encrypt(token: str) -> str:
        return cipher_suite.encrypt(token.encode()).decode()

    @staticmethod
    def decrypt(token: str) -> str:
        return cipher_suite.decrypt(token.encode()).decode()
