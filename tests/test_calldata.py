import pytest

from metric_vault.errors import ArithmeticOverflow
from metric_vault.onchain.calldata import (
    EXACT_INPUT_SINGLE_LEGACY_SIGNATURE,
    EXACT_INPUT_SINGLE_SIGNATURE,
    SELECTOR_EXACT_INPUT_SINGLE,
    SELECTOR_EXACT_INPUT_SINGLE_LEGACY,
    SwapRequest,
    SwapRouterVariant,
    decode_amount_out,
    decode_exact_input_single,
    encode_address_word,
    encode_exact_input_single,
    encode_fee_word,
    encode_uint256_word,
    format_calldata_words,
    selector_for,
)

TOKEN_IN = "0x75faf114eafb1bdbe2f0316df893fd58ce46aa4d"
TOKEN_OUT = "0x980b62da83eff3d4576c647993b0c1d7faf17c73"
RECIPIENT = "0xbebbe2bacc1f5caf9a471838b7567ff636093c84"


def _request(**overrides) -> SwapRequest:
    fields = dict(
        token_in=TOKEN_IN,
        token_out=TOKEN_OUT,
        fee=3000,
        recipient=RECIPIENT,
        amount_in=100,
        amount_out_minimum=100,
        sqrt_price_limit_x96=0,
    )
    fields.update(overrides)
    return SwapRequest(**fields)


def _words(calldata: bytes, skip: int = 0) -> list[bytes]:
    body = calldata[4:]
    words = [body[i : i + 32] for i in range(0, len(body), 32)]
    return words[skip:]


def test_selectors_match_function_signatures():
    assert selector_for(EXACT_INPUT_SINGLE_SIGNATURE) == SELECTOR_EXACT_INPUT_SINGLE
    assert selector_for(EXACT_INPUT_SINGLE_LEGACY_SIGNATURE) == SELECTOR_EXACT_INPUT_SINGLE_LEGACY


def test_end_to_end_router02_vector():
    calldata = encode_exact_input_single(_request())
    expected = (
        "04e45aaf"
        + "0" * 24 + "75faf114eafb1bdbe2f0316df893fd58ce46aa4d"
        + "0" * 24 + "980b62da83eff3d4576c647993b0c1d7faf17c73"
        + "0" * 61 + "bb8"
        + "0" * 24 + "bebbe2bacc1f5caf9a471838b7567ff636093c84"
        + "0" * 62 + "64"
        + "0" * 62 + "64"
        + "0" * 64
    )
    assert calldata.hex() == expected
    assert calldata[:4] == bytes.fromhex("04e45aaf")


def test_encoding_is_deterministic():
    request = _request(amount_in=1743707118, deadline=None)
    assert encode_exact_input_single(request) == encode_exact_input_single(request)
    legacy = _request(deadline=1234567890)
    assert encode_exact_input_single(legacy, SwapRouterVariant.LEGACY) == encode_exact_input_single(
        legacy, SwapRouterVariant.LEGACY
    )


def test_router02_without_deadline_is_seven_words():
    assert len(encode_exact_input_single(_request())) == 4 + 32 * 7


def test_legacy_variant_adds_offset_word():
    calldata = encode_exact_input_single(_request(), SwapRouterVariant.LEGACY)
    assert len(calldata) == 4 + 32 * 8
    assert calldata[:4] == bytes.fromhex("414bf389")
    assert int.from_bytes(calldata[4:36], "big") == 32


def test_legacy_variant_with_deadline_matches_member_order():
    calldata = encode_exact_input_single(
        _request(amount_in=1743707118, deadline=1234567890), SwapRouterVariant.LEGACY
    )
    assert len(calldata) == 4 + 32 * 9
    words = _words(calldata, skip=1)
    assert int.from_bytes(words[4], "big") == 1234567890
    assert int.from_bytes(words[5], "big") == 1743707118
    assert int.from_bytes(words[6], "big") == 100
    assert words[7] == bytes(32)


def test_deadline_without_offset_is_eight_words():
    calldata = encode_exact_input_single(_request(deadline=7))
    assert len(calldata) == 4 + 32 * 8


def test_address_words_are_right_aligned():
    words = _words(encode_exact_input_single(_request()))
    for word, address in ((words[0], TOKEN_IN), (words[1], TOKEN_OUT), (words[3], RECIPIENT)):
        assert word[:12] == bytes(12)
        assert word[12:32] == bytes.fromhex(address[2:])


def test_address_word_accepts_raw_bytes_and_checksummed_hex():
    raw = bytes.fromhex(TOKEN_IN[2:])
    assert encode_address_word(raw) == encode_address_word(TOKEN_IN)
    assert encode_address_word("0x75FAF114EAFB1BDBE2F0316DF893FD58CE46AA4D") == encode_address_word(TOKEN_IN)


def test_address_word_rejects_wrong_length():
    with pytest.raises(ValueError):
        encode_address_word(b"\x01" * 19)


def test_fee_word_layout():
    word = encode_fee_word(3000)
    assert len(word) == 32
    assert word[:29] == bytes(29)
    assert word[29:32] == bytes([0x00, 0x0B, 0xB8])


def test_fee_above_24_bits_truncates_silently():
    assert encode_fee_word(0x01000001) == encode_fee_word(0x000001)
    truncated = encode_exact_input_single(_request(fee=0x01000001))
    assert truncated == encode_exact_input_single(_request(fee=1))


def test_uint256_word_is_full_width_big_endian():
    assert encode_uint256_word(1) == bytes(31) + b"\x01"
    assert encode_uint256_word(2**160 - 1) == bytes(12) + b"\xff" * 20
    assert encode_uint256_word(2**256 - 1) == b"\xff" * 32


def test_uint256_word_rejects_out_of_range():
    with pytest.raises(ArithmeticOverflow):
        encode_uint256_word(2**256)
    with pytest.raises(ArithmeticOverflow):
        encode_uint256_word(-1)


def test_decode_round_trip_preserves_fields():
    request = _request(deadline=55, sqrt_price_limit_x96=2**96)
    variant, decoded = decode_exact_input_single(
        encode_exact_input_single(request, SwapRouterVariant.LEGACY)
    )
    assert variant is SwapRouterVariant.LEGACY
    assert decoded.deadline == 55
    assert decoded.sqrt_price_limit_x96 == 2**96
    assert decoded.token_in == TOKEN_IN
    assert decoded.recipient == RECIPIENT


def test_decode_rejects_unknown_selector():
    with pytest.raises(ValueError):
        decode_exact_input_single(b"\xde\xad\xbe\xef" + bytes(32 * 7))


def test_decode_amount_out_reads_trailing_word():
    assert decode_amount_out((500).to_bytes(32, "big")) == 500
    assert decode_amount_out(bytes(32) + (7).to_bytes(32, "big")) == 7
    assert decode_amount_out(b"\x01" * 31) is None


def test_format_calldata_words_names_legacy_layout():
    calldata = encode_exact_input_single(_request(deadline=9), SwapRouterVariant.LEGACY)
    names = [name for name, _ in format_calldata_words(calldata)]
    assert names == [
        "selector",
        "offset",
        "tokenIn",
        "tokenOut",
        "fee",
        "recipient",
        "deadline",
        "amountIn",
        "amountOutMinimum",
        "sqrtPriceLimitX96",
    ]
