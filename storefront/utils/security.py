import bcrypt

from storefront import config


def _secret(password: str) -> bytes:
    # bcrypt учитывает только первые 72 байта
    return password.encode("utf-8")[:72]


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_secret(password), salt).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    """Сверка пароля с bcrypt-хэшем; битый хэш = неверный пароль."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_secret(password), password_hash.encode("ascii"))
    except ValueError:
        return False
