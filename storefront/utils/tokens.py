import secrets
import string
import time

_ALPHABET = string.ascii_uppercase + string.digits


def make_order_number(suffix_length: int = 5) -> str:
    # ORDER-<миллисекунды>-<случайный хвост>, уникальность проверяет БД
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(suffix_length))
    return f"ORDER-{int(time.time() * 1000)}-{suffix}"
