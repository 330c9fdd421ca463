from oidc_flow.security import code_challenge_s256, generate_code_verifier, generate_state


def test_code_challenge_matches_rfc7636_example():
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
    assert code_challenge_s256(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_code_verifier_length_is_valid():
    verifier = generate_code_verifier()
    assert 43 <= len(verifier) <= 128
    assert verifier.isalnum()


def test_state_is_random():
    assert generate_state() != generate_state()
