import pytest

from classroom_qa.validation import (
    ValidationError,
    contains_sql_injection,
    validate_answer,
    validate_message,
    validate_password,
    validate_question,
    validate_review,
    validate_username,
)


@pytest.mark.parametrize("name", ["valid_user123", "abcd", "a.b-c_d", "Jo3y", "abcdefghijklmnop"])
def test_accepted_usernames(name):
    assert validate_username(name) == name


@pytest.mark.parametrize("name, message", [
    ("", "The username input is empty!"),
    ("1abc", "UserName must start with A-Z, or a-z"),
    ("_abc", "UserName must start with A-Z, or a-z"),
    ("abc", "A UserName must have at least 4 characters."),
    ("abcdefghijklmnopq", "A UserName must have no more than 16 characters."),
    ("abcd.", "A UserName character after a period hyphen or underscore must be A-Z, a-z, 0-9."),
    ("ab..cd", "A UserName character after a period hyphen or underscore must be A-Z, a-z, 0-9."),
    ("abcd!", "A UserName character may only contain the characters A-Z, a-z, 0-9."),
    ("ab!", "A UserName must have at least 4 characters."),
])
def test_rejected_usernames(name, message):
    with pytest.raises(ValidationError) as exc:
        validate_username(name)
    assert exc.value.message == message


def test_username_error_index_points_at_bad_character():
    with pytest.raises(ValidationError) as exc:
        validate_username("abcd efg")
    assert exc.value.index == 4


def test_accepted_password():
    assert validate_password("Passw0rd!") == "Passw0rd!"


def test_empty_password():
    with pytest.raises(ValidationError) as exc:
        validate_password("")
    assert exc.value.message == "The password is empty!"


def test_password_with_invalid_character():
    with pytest.raises(ValidationError) as exc:
        validate_password("Pass word1!")
    assert exc.value.message == "An invalid character has been found!"
    assert exc.value.index == 4


def test_password_lists_every_missing_condition():
    with pytest.raises(ValidationError) as exc:
        validate_password("a")
    assert exc.value.message == (
        "Upper case; Numeric digits; Special character; Long Enough; conditions were not satisfied"
    )


def test_short_password():
    with pytest.raises(ValidationError) as exc:
        validate_password("Ab1!")
    assert exc.value.message == "Long Enough; conditions were not satisfied"


@pytest.mark.parametrize("text", [
    "DROP TABLE users", "x; y", "a -- b", "/* hi */", "please select something",
    "exec xp_cmdshell", "call sp_who",
])
def test_sql_injection_patterns(text):
    assert contains_sql_injection(text)


def test_plain_text_is_not_flagged():
    assert not contains_sql_injection("What does the selection sort do?")


def test_question_rules():
    assert validate_question("  What is a list?  ") == "What is a list?"
    with pytest.raises(ValidationError, match="cannot be empty"):
        validate_question("   ")
    with pytest.raises(ValidationError, match="at least 5"):
        validate_question("Why")
    with pytest.raises(ValidationError, match="more than 150"):
        validate_question("x" * 151)
    with pytest.raises(ValidationError, match="SQL injection"):
        validate_question("How to DELETE FROM a table?")


def test_answer_rules():
    assert validate_answer("y") == "y"
    with pytest.raises(ValidationError, match="more than 500"):
        validate_answer("y" * 501)
    with pytest.raises(ValidationError, match="cannot be empty"):
        validate_answer(None)


def test_review_rules():
    assert validate_review("ok") == "ok"
    with pytest.raises(ValidationError, match="at least 2"):
        validate_review("k")
    with pytest.raises(ValidationError, match="more than 350"):
        validate_review("k" * 351)


def test_messages_may_mention_sql():
    assert validate_message("try select * from t; it works") == "try select * from t; it works"
    with pytest.raises(ValidationError, match="more than 1000"):
        validate_message("m" * 1001)
