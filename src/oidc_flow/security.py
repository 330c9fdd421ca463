from authlib.common.security import generate_token
from authlib.oauth2.rfc7636 import create_s256_code_challenge


CODE_CHALLENGE_METHOD_S256 = "S256"


def generate_state() -> str:
    return generate_token(32)


def generate_nonce() -> str:
    return generate_token(32)


def generate_code_verifier() -> str:
    # Letters and digits only; valid PKCE length is 43-128
    return generate_token(64)


def code_challenge_s256(verifier: str) -> str:
    return create_s256_code_challenge(verifier)
