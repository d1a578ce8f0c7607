import re

import bcrypt

MIN_PASSWORD_LENGTH = 8


def hash_password(password: str | bytes) -> str:
    """
    Hash a password using bcrypt directly, handling str or bytes input.
    """
    if isinstance(password, bytes):
        password_bytes = password
    else:
        password_bytes = password.encode('utf-8')
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    # Members created by an admin without login have no password at all
    if not hashed_password:
        return False
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))


def generate_temp_password(last_name: str, phone_number: str) -> str:
    """
    Last name followed by the last four phone digits, padded with zeros to the minimum length.
    """
    digits = re.sub(r"\D", "", phone_number or "")
    base = f"{last_name}{digits[-4:].rjust(4, '0')}"
    return base.ljust(MIN_PASSWORD_LENGTH, "0")
