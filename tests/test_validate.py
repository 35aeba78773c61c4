import pytest

from mnemonic_otp import (
    STRONG_TEMPLATES,
    InvalidAlphabet,
    InvalidTemplatePool,
    MissingSecret,
    compute_digest,
    generate,
    matches_template,
    pattern,
    validate_code,
)

ABCABC = [pattern("ABCABC")]


def test_valid_and_invalid_cases():
    code = generate(templates=ABCABC).code
    assert validate_code(code, templates=ABCABC)
    assert not validate_code("ZZZZZX", templates=ABCABC)


def test_case_insensitive():
    assert validate_code("k7qk7q", templates=ABCABC)


def test_character_outside_alphabet():
    # I and O are excluded from the default alphabet
    assert not validate_code("IOXIOX", templates=ABCABC)
    assert not validate_code("12-12-", templates=ABCABC)


def test_length_mismatch():
    assert not validate_code("12312", templates=ABCABC)
    assert not validate_code("", templates=ABCABC)


def test_different_slots_may_share_a_character():
    assert validate_code("777777", templates=ABCABC)
    assert validate_code("ABBBBA", templates=["ABCCBA"])


def test_same_slot_must_share_a_character():
    assert not validate_code("123124", templates=ABCABC)
    assert not validate_code("ABCCBB", templates=["ABCCBA"])


def test_any_template_in_pool_matches():
    pool = ["ABCABC", "AAABBB"]
    assert validate_code("XXXYYY", templates=pool)
    assert validate_code("XYZXYZ", templates=pool)
    assert not validate_code("XYZZYX", templates=pool)


def test_default_pool_and_alphabet():
    assert validate_code("9H29H2")
    assert validate_code("AAABBB")
    assert not validate_code("AB")


def test_non_string_candidate():
    assert validate_code(None) is False
    assert validate_code(123123) is False


def test_explicit_bad_options_raise():
    with pytest.raises(InvalidAlphabet):
        validate_code("AAA", alphabet="A")
    with pytest.raises(InvalidAlphabet):
        validate_code("AAA", alphabet="AAB")
    with pytest.raises(InvalidTemplatePool):
        validate_code("AAA", templates=[])


def test_matches_template():
    t = pattern("ABCDAB")
    assert matches_template("XYZWXY", t)
    assert matches_template("XXXXXX", t)
    assert not matches_template("XYZWXZ", t)
    assert not matches_template("XYZWX", t)


class TestBinding:

    def test_valid_digest_verifies(self, secret, meta):
        g = generate(templates=STRONG_TEMPLATES, secret=secret, meta=meta, digest_encoding="base64url")
        assert validate_code(
            g.code, templates=STRONG_TEMPLATES, secret=secret, meta=meta,
            stored_digest=g.digest, digest_encoding="base64url",
        )

    def test_lowercase_candidate_still_verifies(self, secret, meta):
        g = generate(templates=STRONG_TEMPLATES, secret=secret, meta=meta)
        assert validate_code(g.code.lower(), templates=STRONG_TEMPLATES, secret=secret, meta=meta,
                             stored_digest=g.digest)

    def test_wrong_meta_fails(self, secret, meta):
        g = generate(templates=STRONG_TEMPLATES, secret=secret, meta=meta, digest_encoding="base64url")
        assert not validate_code(
            g.code, templates=STRONG_TEMPLATES, secret=secret,
            meta={**meta, "attemptNonce": "deadbeef"},
            stored_digest=g.digest, digest_encoding="base64url",
        )

    def test_wrong_code_fails(self, secret, meta):
        # ABCDEFGH accepts any 8 symbols, so only the digest can reject the change
        pool = ["ABCDEFGH"]
        g = generate(templates=pool, secret=secret, meta=meta)
        last = "0" if g.code[-1] != "0" else "1"
        tampered = g.code[:-1] + last
        assert validate_code(tampered, templates=pool)
        assert not validate_code(tampered, templates=pool, secret=secret, meta=meta, stored_digest=g.digest)

    def test_wrong_secret_fails(self, secret, meta):
        g = generate(secret=secret, meta=meta)
        assert not validate_code(g.code, secret=b"another-key", meta=meta, stored_digest=g.digest)

    def test_syntactically_invalid_code_fails_before_digest(self, secret):
        digest = compute_digest("ZZZZZX", secret)
        assert not validate_code("ZZZZZX", templates=ABCABC, secret=secret, stored_digest=digest)

    def test_secret_without_digest_is_rejected(self, secret):
        assert not validate_code("123123", templates=ABCABC, secret=secret)

    def test_digest_without_secret_raises(self):
        with pytest.raises(MissingSecret):
            validate_code("123123", templates=ABCABC, stored_digest="00")

    def test_malformed_digest_is_false(self, secret):
        assert not validate_code("123123", templates=ABCABC, secret=secret, stored_digest="not hex!")
