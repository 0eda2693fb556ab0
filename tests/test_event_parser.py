from valorbot.services.event_parser import (
    parse_attendee_line,
    parse_event_id,
    parse_header,
    parse_message,
    status_delta,
)

from conftest import at

SAMPLE = "Event ID: P0001\nHost: <@!123>\nAttendees:\n- <@!456> | 3V\n- <@!789> | DO\n- <@!123> | V"


def test_sample_report():
    rec = parse_message(SAMPLE)
    assert rec is not None
    assert rec.event_id == "P0001"
    assert rec.host == "123"

    d456 = rec.deltas["456"]
    assert (d456.valor_change, d456.events_attended, d456.do_count) == (3, 1, 0)

    d789 = rec.deltas["789"]
    assert (d789.valor_change, d789.do_count, d789.events_attended) == (-1, 1, 1)

    host = rec.deltas["123"]
    assert host.valor_change == 2
    assert host.events_attended == 1
    assert host.events_hosted == 1


def test_event_id_prefixes():
    for eid in ("P1234", "GT0001", "DT9999", "R0420"):
        assert parse_event_id(f"Event ID: {eid}") == eid
    assert parse_event_id("Event ID:GT0001 (raid)") == "GT0001"


def test_event_id_rejects_bad_ids():
    assert parse_event_id("Event ID: X0001") is None
    assert parse_event_id("Event ID: P001") is None
    assert parse_event_id("Event ID: P00012") is None
    assert parse_event_id("event id: P0001") is None


def test_only_ascii_digits_count():
    assert parse_event_id("Event ID: P١٢٣٤") is None
    assert parse_message("Event ID: P١٢٣٤\nAttendees:\n- <@٥> | ٣V") is None
    assert parse_attendee_line("- <@٥> | V") is None
    assert parse_attendee_line("- <@5> | ٣V") is None
    rec = parse_message("Event ID: P0001\nHost: <@٩>\nAttendees:\n- <@5> | V")
    assert rec.host is None
    assert list(rec.deltas) == ["5"]


def test_event_id_must_be_first_line():
    body = "Raid tonight!\nEvent ID: P0001\nAttendees:\n- <@1> | V"
    assert parse_message(body) is None


def test_plain_chat_is_not_an_event():
    assert parse_message("hello everyone") is None
    assert parse_message("") is None


def test_missing_attendees_section_discards_event():
    body = "Event ID: P0001\nHost: <@!123>\n- <@!456> | V"
    assert parse_header(body) is None
    assert parse_message(body) is None


def test_blank_lines_are_ignored():
    body = "\n\nEvent ID: R0001\n\nAttendees:\n\n- <@5> | V\n"
    rec = parse_message(body)
    assert rec is not None
    assert rec.deltas["5"].valor_change == 1


def test_host_is_optional():
    rec = parse_message("Event ID: DT0001\nAttendees:\n- <@5> | 2V")
    assert rec is not None
    assert rec.host is None
    assert rec.deltas["5"].events_hosted == 0


def test_host_label_is_case_insensitive():
    rec = parse_message("Event ID: P0001\nHOST: <@77>\nattendees:\n- <@5> | V")
    assert rec.host == "77"


def test_host_without_attendee_row_still_gets_bonus():
    rec = parse_message("Event ID: P0002\nHost: <@!9>\nAttendees:\n- <@!5> | V")
    host = rec.deltas["9"]
    assert host.valor_change == 1
    assert host.events_hosted == 1
    assert host.events_attended == 0


def test_host_with_do_status_nets_zero():
    rec = parse_message("Event ID: P0003\nHost: <@9>\nAttendees:\n- <@9> | DO")
    host = rec.deltas["9"]
    assert host.valor_change == 0
    assert host.do_count == 1
    assert host.events_hosted == 1


def test_status_tokens():
    assert status_delta("V").valor_change == 1
    assert status_delta("5V").valor_change == 5
    assert status_delta("0V").valor_change == 0
    ina = status_delta("INA")
    assert (ina.valor_change, ina.ina_count) == (0, 1)
    afk = status_delta("AFK")
    assert (afk.valor_change, afk.ina_count, afk.do_count, afk.events_attended) == (0, 0, 0, 1)


def test_attendee_line_grammar():
    row = parse_attendee_line("- <@!456> | 3v")
    assert (row.user_id, row.status) == ("456", "3V")
    row = parse_attendee_line("-<@456> Sgt. Smith | ina")
    assert (row.user_id, row.status) == ("456", "INA")
    assert parse_attendee_line("<@456> | V") is None
    assert parse_attendee_line("- <@456> V") is None
    assert parse_attendee_line("- <@456> | Valiant") is None
    assert parse_attendee_line("- someone | V") is None


def test_free_text_rows_are_skipped():
    body = (
        "Event ID: GT0100\nAttendees:\n"
        "- <@1> | V\n"
        "great turnout tonight\n"
        "- <@2> | maybe\n"
        "- <@3> | AFK"
    )
    rec = parse_message(body)
    assert set(rec.deltas) == {"1", "3"}


def test_duplicate_rows_keep_last():
    rec = parse_message("Event ID: P0001\nAttendees:\n- <@1> | 3V\n- <@1> | DO")
    assert rec.deltas["1"].valor_change == -1
    assert rec.deltas["1"].events_attended == 1


def test_timestamp_comes_from_caller():
    rec = parse_message(SAMPLE, at(42))
    assert rec.timestamp == at(42)
