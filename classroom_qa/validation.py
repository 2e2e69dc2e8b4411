"""Input validation for form fields.

Usernames go through a small finite-state recognizer, passwords through a
single-pass evaluator, and free text (questions, answers, reviews, direct
messages) through length rules plus a keyword blocklist. Every failure is a
``ValidationError`` whose message is safe to show to the user.
"""

from typing import Optional


class ValidationError(ValueError):
    """Rejected user input.

    ``index`` points at the offending character when the check is
    character based (username and password), otherwise it is ``None``.
    """

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.index = index


USERNAME_MIN_LENGTH = 4
USERNAME_MAX_LENGTH = 16
USERNAME_SEPARATORS = ".-_"

PASSWORD_MIN_LENGTH = 8
PASSWORD_SPECIALS = "~`!@#$%^&*()_-+{}[]|:,.?/"

MIN_QUESTION_LENGTH = 5
MAX_QUESTION_LENGTH = 150
MIN_ANSWER_LENGTH = 1
MAX_ANSWER_LENGTH = 500
MIN_REVIEW_LENGTH = 2
MAX_REVIEW_LENGTH = 350
MAX_MESSAGE_LENGTH = 1000

SQL_INJECTION_PATTERNS = (
    "drop table", "delete from", "insert into", "update ", "select ",
    ";", "--", "/*", "*/", "exec ", "execute ", "xp_", "sp_",
)


def _is_letter(ch: str) -> bool:
    return ("A" <= ch <= "Z") or ("a" <= ch <= "z")


def _is_alnum(ch: str) -> bool:
    return _is_letter(ch) or ("0" <= ch <= "9")


def validate_username(username: str) -> str:
    """
    Run the username recognizer and return the username if accepted.

    States:
        0: start, expects a letter
        1: inside a name (accepting), letters/digits stay, a separator moves to 2
        2: just read a separator, expects a letter or digit

    The scan stops on the first character with no transition, or once the
    name grows past the maximum length.
    """
    if not username:
        raise ValidationError("The username input is empty!", index=0)

    state = 0
    size = 0
    index = 0
    while index < len(username):
        ch = username[index]
        if state == 0:
            if not _is_letter(ch):
                break
            next_state = 1
        elif state == 1:
            if _is_alnum(ch):
                next_state = 1
            elif ch in USERNAME_SEPARATORS:
                next_state = 2
            else:
                break
        else:
            if not _is_alnum(ch):
                break
            next_state = 1

        size += 1
        if size > USERNAME_MAX_LENGTH:
            break
        state = next_state
        index += 1

    if state == 0:
        raise ValidationError("UserName must start with A-Z, or a-z", index=index)
    if state == 2:
        raise ValidationError(
            "A UserName character after a period hyphen or underscore must be A-Z, a-z, 0-9.",
            index=index,
        )
    if size < USERNAME_MIN_LENGTH:
        raise ValidationError(
            f"A UserName must have at least {USERNAME_MIN_LENGTH} characters.", index=index
        )
    if size > USERNAME_MAX_LENGTH:
        raise ValidationError(
            f"A UserName must have no more than {USERNAME_MAX_LENGTH} characters.", index=index
        )
    if index < len(username):
        raise ValidationError(
            "A UserName character may only contain the characters A-Z, a-z, 0-9.", index=index
        )
    return username


def validate_password(password: str) -> str:
    """
    Evaluate a password and return it if every condition holds.

    Conditions: an upper case letter, a lower case letter, a digit, one of
    ``PASSWORD_SPECIALS`` and at least ``PASSWORD_MIN_LENGTH`` characters.
    Any other character is rejected immediately.
    """
    if not password:
        raise ValidationError("The password is empty!", index=0)

    found_upper = found_lower = found_digit = found_special = False
    for index, ch in enumerate(password):
        if "A" <= ch <= "Z":
            found_upper = True
        elif "a" <= ch <= "z":
            found_lower = True
        elif "0" <= ch <= "9":
            found_digit = True
        elif ch in PASSWORD_SPECIALS:
            found_special = True
        else:
            raise ValidationError("An invalid character has been found!", index=index)
    long_enough = len(password) >= PASSWORD_MIN_LENGTH

    missing = []
    if not found_upper:
        missing.append("Upper case")
    if not found_lower:
        missing.append("Lower case")
    if not found_digit:
        missing.append("Numeric digits")
    if not found_special:
        missing.append("Special character")
    if not long_enough:
        missing.append("Long Enough")
    if missing:
        message = "".join(f"{m}; " for m in missing) + "conditions were not satisfied"
        raise ValidationError(message, index=len(password))
    return password


def contains_sql_injection(text: str) -> bool:
    lowered = text.lower()
    return any(pattern in lowered for pattern in SQL_INJECTION_PATTERNS)


def _validate_text(text: Optional[str], label: str, min_length: int, max_length: int,
                   check_injection: bool = True) -> str:
    trimmed = (text or "").strip()
    if not trimmed:
        raise ValidationError(f"{label} cannot be empty.")
    if len(trimmed) < min_length:
        raise ValidationError(f"{label} must be at least {min_length} characters.")
    if len(trimmed) > max_length:
        raise ValidationError(f"{label} cannot be more than {max_length} characters.")
    if check_injection and contains_sql_injection(trimmed):
        raise ValidationError(f"{label} contains potential SQL injection. Please rephrase")
    return trimmed


def validate_question(text: Optional[str]) -> str:
    return _validate_text(text, "Question", MIN_QUESTION_LENGTH, MAX_QUESTION_LENGTH)


def validate_answer(text: Optional[str]) -> str:
    return _validate_text(text, "Answer", MIN_ANSWER_LENGTH, MAX_ANSWER_LENGTH)


def validate_review(text: Optional[str]) -> str:
    return _validate_text(text, "Review", MIN_REVIEW_LENGTH, MAX_REVIEW_LENGTH)


def validate_message(text: Optional[str]) -> str:
    # Direct messages skip the keyword blocklist
    return _validate_text(text, "Message", 1, MAX_MESSAGE_LENGTH, check_injection=False)
