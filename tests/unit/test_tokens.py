"""Tests for token generation and hashing."""

import pytest

from passwordless.core.tokens import (
    BASE58_ALPHABET,
    DEFAULT_TOKEN_LENGTH,
    MAX_NUMBER_TOKEN,
    generate_number_token,
    generate_token,
    hash_token,
    token_generator,
)


class TestGenerateToken:
    """Tests for the default base58 generator."""

    def test_default_length(self):
        assert len(generate_token()) == DEFAULT_TOKEN_LENGTH

    def test_only_base58_characters(self):
        token = generate_token()
        assert set(token) <= set(BASE58_ALPHABET)

    def test_alphabet_excludes_lookalikes(self):
        for char in "0OIl":
            assert char not in BASE58_ALPHABET

    def test_tokens_are_unique(self):
        tokens = {generate_token() for _ in range(200)}
        assert len(tokens) == 200

    def test_custom_length(self):
        assert len(generate_token(40)) == 40

    def test_rejects_short_length(self):
        with pytest.raises(ValueError, match="at least 20"):
            generate_token(19)

    def test_token_generator_binds_length(self):
        generate = token_generator(30)
        assert len(generate()) == 30
        assert generate() != generate()


class TestGenerateNumberToken:
    """Tests for numeric tokens."""

    def test_stays_below_max(self):
        for _ in range(200):
            value = int(generate_number_token(1000))
            assert 0 <= value < 1000

    def test_is_decimal_string(self):
        assert generate_number_token(10**6).isdigit()

    def test_max_one_always_zero(self):
        assert generate_number_token(1) == "0"

    def test_accepts_full_32_bit_range(self):
        assert 0 <= int(generate_number_token(MAX_NUMBER_TOKEN)) < MAX_NUMBER_TOKEN

    @pytest.mark.parametrize("max_value", [0, -5, MAX_NUMBER_TOKEN + 1])
    def test_rejects_out_of_range_max(self, max_value):
        with pytest.raises(ValueError, match="between 1 and 2"):
            generate_number_token(max_value)


class TestHashToken:
    def test_sha256_hex_digest(self):
        digest = hash_token("abc")
        assert digest == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

    def test_different_tokens_hash_differently(self):
        assert hash_token("token-a") != hash_token("token-b")
