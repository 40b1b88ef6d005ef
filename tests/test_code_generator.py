from app.application.services.code_generator import codes_match, generate_code, hash_code, new_session_id


def test_generate_code_is_numeric_with_requested_length():
    for length in (4, 6, 8):
        code = generate_code(length)
        assert len(code) == length
        assert code.isdigit()


def test_generate_code_varies():
    codes = {generate_code(6) for _ in range(50)}
    assert len(codes) > 1


def test_hash_code_never_contains_plaintext_and_depends_on_session():
    h1 = hash_code("123456", "s1", "secret")
    h2 = hash_code("123456", "s2", "secret")
    assert "123456" not in h1
    assert h1 != h2
    assert h1 != hash_code("123456", "s1", "other-secret")


def test_codes_match():
    h = hash_code("123456", "s1", "secret")
    assert codes_match("123456", "s1", "secret", h) is True
    assert codes_match("654321", "s1", "secret", h) is False


def test_session_ids_are_unique():
    ids = {new_session_id() for _ in range(100)}
    assert len(ids) == 100
