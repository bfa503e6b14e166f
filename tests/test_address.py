"""Golden tests for Malaysian / Singaporean address parsing."""

from orderbot.domain.address import (
    AddressExtractor,
    candidate_text,
    clean_address_line,
    extract_address,
    parse_address,
)
from orderbot.domain.orders import ParsedAddress

from .helpers import SCENARIO_A


class TestParseAddress:
    """Postcode / state / city / country decomposition."""

    def test_penang_multiline(self):
        parsed = parse_address("6 Lorong Vila Indah 7,\n14300 Nibong Tebal,\nPulau Pinang.")

        assert parsed.postcode == "14300"
        assert parsed.state == "Penang"
        assert parsed.city == "Nibong Tebal"
        assert parsed.country == "Malaysia"
        assert parsed.line == "6 Lorong Vila Indah 7, Nibong Tebal"

    def test_selangor_known_city(self):
        parsed = parse_address("No 8, Jalan Indah 3, Taman Universiti Indah,\n43300 Seri Kembangan, Selangor.")

        assert parsed.postcode == "43300"
        assert parsed.state == "Selangor"
        assert parsed.city == "Seri Kembangan"

    def test_state_alias_and_city_prefix(self):
        """"jb" resolves to Johor; the Taman segment is the city."""
        parsed = parse_address("28 jalan sagu 38,Taman daya 81100 jb")

        assert parsed.postcode == "81100"
        assert parsed.state == "Johor"
        assert parsed.city == "Taman daya"
        assert parsed.line == "28 jalan sagu 38, Taman daya"

    def test_city_containing_state_name_is_kept(self):
        parsed = parse_address("No 12, Jalan Mawar 3, 81100 Johor Bahru, Johor")

        assert parsed.state == "Johor"
        assert parsed.city == "Johor Bahru"
        assert parsed.line == "No 12, Jalan Mawar 3, Johor Bahru"

    def test_city_equal_to_state(self):
        parsed = parse_address("10, Jalan Tun Razak, 50450 Kuala Lumpur")

        assert parsed.state == "Kuala Lumpur"
        assert parsed.city == "Kuala Lumpur"
        assert parsed.line == "10, Jalan Tun Razak"

    def test_singapore_six_digit_postcode(self):
        parsed = parse_address("Blk 123 Tampines St 11 #05-67 Singapore 521123")

        assert parsed.postcode == "521123"
        assert parsed.state == "Singapore"
        assert parsed.country == "Singapore"

    def test_sungai_abbreviation_is_not_singapore(self):
        """"Sg" next to a 5-digit postcode is Sungai, not Singapore."""
        parsed = parse_address("12 Jalan Sg Ramal Dalam, 43000 Kajang")

        assert parsed.country == "Malaysia"
        assert parsed.state is None
        assert parsed.postcode == "43000"
        assert parsed.city == "Kajang"

    def test_postcode_length_decides_country(self):
        assert parse_address("Blk 5 Sg Road, 238801").country == "Singapore"
        assert parse_address("Lot 3, Kampung Sg Besi, 57100 KL").country == "Malaysia"

    def test_no_postcode_defaults_to_malaysia(self):
        parsed = parse_address("Lot 5, Kampung Baru")

        assert parsed.postcode is None
        assert parsed.country == "Malaysia"
        assert parsed.city == "Kampung Baru"

    def test_aliases_match_whole_words_only(self):
        """"sel" inside "Selasih" and "kl" inside "Klinik" are not states."""
        parsed = parse_address("12 Jalan Selasih, Klinik Kesihatan")
        assert parsed.state is None

    def test_postcode_cities_table_wins(self):
        parsed = parse_address("12 Jalan Bunga, 43300 Selangor", postcode_cities={"43300": "Seri Kembangan"})
        assert parsed.city == "Seri Kembangan"

    def test_empty(self):
        assert parse_address("") == ParsedAddress()
        assert parse_address("019-4419638") == ParsedAddress()


class TestCandidateText:
    def test_drops_noise_lines(self):
        text = candidate_text(SCENARIO_A)
        assert "total" not in text.lower()
        assert "6/8/2025" not in text
        assert "019-4419638" not in text
        assert "1w1f1s1w30ml" not in text
        assert "14300 Nibong Tebal" in text

    def test_strips_labels(self):
        assert candidate_text("Address: 12 Jalan Bunga") == "12 Jalan Bunga"
        assert candidate_text("地址：12 Jalan Bunga") == "12 Jalan Bunga"


class TestCleanAddressLine:
    def test_trailing_state_word_removed(self):
        parsed = ParsedAddress(raw="43300 Seri Kembangan Selangor", postcode="43300", state="Selangor")
        assert clean_address_line(parsed) == "Seri Kembangan"


class TestExtractAddress:
    def test_from_whole_message(self):
        parsed = extract_address(SCENARIO_A)
        assert parsed is not None
        assert parsed.postcode == "14300"
        assert parsed.state == "Penang"

    def test_after_last_address_label(self):
        text = "Name: Ali\nAddress: 10, Jalan Tun Razak, 50450 Kuala Lumpur"
        parsed = AddressExtractor().extract(text)
        assert parsed is not None
        assert parsed.postcode == "50450"

    def test_none(self):
        assert extract_address("") is None
        assert extract_address(None) is None
