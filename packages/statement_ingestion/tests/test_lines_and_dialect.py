from packages.statement_ingestion.dialect import (
    choose_delimiter,
    detect_dialect,
    sample_lines,
    split_fields,
)
from packages.statement_ingestion.lines import decode_statement, normalise_lines


def test_normalise_lines_strips_bom_and_unifies_line_endings():
    content = "\ufeffa;b\r\nc;d\re;f\n".encode("utf-8")

    assert normalise_lines(content) == ["a;b", "c;d", "e;f", ""]


def test_normalise_lines_empty_input():
    assert normalise_lines(b"") == []
    assert normalise_lines("\ufeff") == []


def test_decode_statement_falls_back_to_cp1250():
    """Polish exports from older banking portals are Windows-1250."""
    content = "Data księgowania;Kwota".encode("cp1250")

    assert decode_statement(content) == "Data księgowania;Kwota"


def test_split_fields_honours_quotes():
    assert split_fields('2024-01-01;"Sklep; Warszawa";-10,00', ";") == [
        "2024-01-01",
        "Sklep; Warszawa",
        "-10,00",
    ]


def test_split_fields_unquotes_cells_of_a_broken_line():
    assert split_fields('"2024-03-02","Kawiarnia "X" sp","-3.00"', ",") == [
        "2024-03-02",
        'Kawiarnia "X" sp',
        "-3.00",
    ]


def test_detect_dialect_semicolon_with_preamble():
    """Account metadata above the header must not be mistaken for the header."""
    lines = normalise_lines(
        "Lista operacji\n"
        "Rachunek: 12 3456 7890\n"
        "\n"
        "Data księgowania;Data waluty;Opis operacji;Kwota;Waluta\n"
        "2024-03-01;2024-03-01;Przelew przychodzący;1 234,56;PLN\n"
        "02.03.2024;02.03.2024;Sklep ABC;-120,00;PLN\n"
    )

    dialect = detect_dialect(lines)

    assert dialect.delimiter == ";"
    assert dialect.header_line_index == 3


def test_detect_dialect_comma():
    lines = normalise_lines(
        "Booking date,Description,Amount\n"
        "2024-03-01,Salary,5000.00\n"
        "2024-03-02,Coffee,-5.50\n"
    )

    dialect = detect_dialect(lines)

    assert dialect.delimiter == ","
    assert dialect.header_line_index == 0


def test_detect_dialect_header_beats_row_with_unquoted_delimiters():
    """A description full of delimiters yields more fields, but not more labels."""
    lines = normalise_lines(
        "Data;Opis;Kwota\n"
        "2024-03-01;Zakup karta; sklep 44;-10,00\n"
    )

    dialect = detect_dialect(lines)

    assert dialect.delimiter == ";"
    assert dialect.header_line_index == 0


def test_choose_delimiter_tie_prefers_semicolon():
    sample = sample_lines(["a", "b"], 60)

    delimiter, max_fields = choose_delimiter(sample)

    assert delimiter == ";"
    assert max_fields == {";": 1, ",": 1}


def test_sample_lines_skips_blank_and_respects_size():
    sample = sample_lines(["", "x", "  ", "y", "z"], 2)

    assert sample == [(1, "x"), (3, "y")]
