from medorder.services.order_parser import (
    ParseError,
    ParseErrorReason,
    ParsedLine,
    parse_order_text,
    parse_segment,
)


def test_single_line():
    result = parse_order_text("Paracetamol,10")
    assert result.ok
    assert result.lines == [ParsedLine("Paracetamol", 10)]


def test_multiple_lines_with_whitespace():
    result = parse_order_text("  Paracetamol , 10 ;Amoxicillin,5;  ")
    assert result.errors == []
    assert result.lines == [ParsedLine("Paracetamol", 10), ParsedLine("Amoxicillin", 5)]


def test_empty_segments_are_skipped():
    result = parse_order_text(";;Paracetamol,1;;")
    assert result.lines == [ParsedLine("Paracetamol", 1)]
    assert result.ok


def test_empty_text():
    result = parse_order_text("")
    assert result.lines == []
    assert result.errors == []


def test_every_bad_segment_is_reported():
    result = parse_order_text("Paracetamol;,5;Dolo,ten;Cetirizine,2")
    assert result.lines == [ParsedLine("Cetirizine", 2)]
    assert [e.reason for e in result.errors] == [
        ParseErrorReason.MISSING_QUANTITY,
        ParseErrorReason.MISSING_NAME,
        ParseErrorReason.INVALID_QUANTITY,
    ]
    assert [e.raw_text for e in result.errors] == ["Paracetamol", ",5", "Dolo,ten"]


def test_quantity_must_be_a_positive_whole_number():
    assert parse_segment("Paracetamol,0") == ParseError("Paracetamol,0", ParseErrorReason.ZERO_QUANTITY)
    assert parse_segment("Paracetamol,-3").reason == ParseErrorReason.INVALID_QUANTITY
    assert parse_segment("Paracetamol,2.5").reason == ParseErrorReason.INVALID_QUANTITY
    assert parse_segment("Paracetamol,١٢").reason == ParseErrorReason.INVALID_QUANTITY


def test_only_first_comma_splits():
    # "5,0" is not an integer, so the whole segment is rejected
    assert parse_segment("Paracetamol,5,0").reason == ParseErrorReason.INVALID_QUANTITY


def test_leading_zeros_are_accepted():
    assert parse_segment("Ibuprofen,007") == ParsedLine("Ibuprofen", 7)


def test_error_description():
    error = parse_segment("Dolo,ten")
    assert error.describe() == "Invalid format: Dolo,ten (quantity is not a whole number)"
