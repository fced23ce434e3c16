from tokenlist.discovery.normalizer import (
    FIELD_ALIASES,
    extract_object_id,
    is_spam,
    normalize_item,
    normalize_page,
    pick_field,
    reject_reason,
)

HEX64 = "ab" * 32


def valid_item(**overrides: object) -> dict:
    item = {
        "objectId": "0xABCDEF01",
        "name": "  Deep Token ",
        "symbol": " DEEP ",
        "decimals": 6,
        "iconUrl": "https://example.com/deep.png",
        "websiteUrl": "https://deep.example",
    }
    item.update(overrides)
    return item


def test_valid_item_is_normalized() -> None:
    record = normalize_item(valid_item())

    assert record is not None
    assert record.name == "Deep Token"
    assert record.symbol == "DEEP"
    assert record.decimals == 6
    assert record.object_id == "0xabcdef01"
    assert record.logo_uri == "https://example.com/deep.png"
    assert record.website == "https://deep.example"


def test_aliases_follow_priority_order() -> None:
    item = {
        "objectId": "0x01",
        "coinName": "Alias Name",
        "coinDenom": "",
        "coinSymbol": "ALS",
        "decimals": 9,
        "icon_url": "https://example.com/a.png",
        "imgUrl": "https://example.com/b.png",
        "website_url": "https://alias.example",
    }

    record = normalize_item(item)

    assert record is not None
    assert record.name == "Alias Name"
    assert record.symbol == "ALS"
    assert record.logo_uri == "https://example.com/a.png"
    assert record.website == "https://alias.example"


def test_alias_table_prefers_primary_key() -> None:
    assert FIELD_ALIASES["symbol"][0] == "symbol"
    assert pick_field({"symbol": "A", "coinDenom": "B"}, "symbol") == "A"
    assert pick_field({"symbol": "  ", "coinDenom": "B"}, "symbol") == "B"
    assert pick_field({}, "symbol") is None


def test_object_id_extracted_from_coin_type() -> None:
    item = valid_item(objectId=None, coinType=f"0x{HEX64.upper()}::deep::DEEP")

    record = normalize_item(item)

    assert record is not None
    assert record.object_id == f"0x{HEX64}"
    assert record.coin_type == f"0x{HEX64.upper()}::deep::DEEP"


def test_object_id_extracted_from_snake_case_coin_type() -> None:
    item = {"coin_type": f"0x{HEX64}::m::T"}

    assert extract_object_id(item) == f"0x{HEX64}"


def test_invalid_direct_id_falls_back_to_coin_type() -> None:
    item = {"objectId": "not-hex", "type": f"wrapper<0x{HEX64}::m::T>"}

    assert extract_object_id(item) == f"0x{HEX64}"


def test_missing_identifier_rejects() -> None:
    item = valid_item(objectId=None, coinType="0x2::sui::SUI")

    assert normalize_item(item) is None
    assert reject_reason(item) == "invalid_object_id"


def test_validity_gate() -> None:
    assert reject_reason(valid_item(name="   ")) == "missing_name"
    assert reject_reason(valid_item(symbol="")) == "missing_symbol"
    assert reject_reason(valid_item(decimals=19)) == "invalid_decimals"
    assert reject_reason(valid_item(decimals=-1)) == "invalid_decimals"
    assert reject_reason(valid_item(decimals=2.5)) == "invalid_decimals"
    assert reject_reason(valid_item(decimals=True)) == "invalid_decimals"
    assert reject_reason(valid_item(decimals="\u00b2")) == "invalid_decimals"
    assert reject_reason(valid_item(decimals="6.0")) == "invalid_decimals"
    assert reject_reason(valid_item(symbol="S" * 17)) == "symbol_too_long"
    assert reject_reason(valid_item(name="N" * 65)) == "name_too_long"
    assert reject_reason("not a dict") == "not_an_object"


def test_absent_decimals_default_to_zero() -> None:
    item = valid_item()
    del item["decimals"]

    record = normalize_item(item)

    assert record is not None
    assert record.decimals == 0


def test_spam_name_rejected() -> None:
    item = valid_item(name="TEST TOKEN")

    assert normalize_item(item) is None
    assert reject_reason(item) == "spam"


def test_spam_patterns() -> None:
    assert is_spam("Fake Coin", "FC")
    assert is_spam("Coin", "SCAM")
    assert is_spam("Coin", "C", "ask the admin")
    assert is_spam("Moon $$$", "MOON")
    assert is_spam("Moon \U0001F680\U0001F680\U0001F680", "MOON")
    assert is_spam("Wait...", "W")
    assert is_spam("Coin", "XXX")
    assert is_spam("Moon \U0001F680 \U0001F680 \U0001F680", "MOON")
    assert is_spam("Gems \U0001F680\U0001F48E\U0001F525", "GEM")
    assert not is_spam("Moon \U0001F680", "MOON")
    assert not is_spam("Moon \U0001F680 and \U0001F48E", "MOON")
    assert not is_spam("Coin", "XXXCOIN")
    assert not is_spam("Deep", "DEEP", "Order book liquidity")


def test_normalize_page_counts_rejects() -> None:
    items = [valid_item(), valid_item(name="fake"), {"name": "No id"}, 42]

    page = normalize_page(items)

    assert len(page.candidates) == 1
    assert page.rejects == {"spam": 1, "invalid_object_id": 1, "not_an_object": 1}
