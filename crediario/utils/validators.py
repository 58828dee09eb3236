"""Brazilian document and phone validation"""

import re


def digits_only(value: str) -> str:
    return re.sub(r"\D", "", value)


def is_valid_cpf(cpf: str) -> bool:
    """
    Validate a CPF by its two check digits.

    Formatting characters are ignored. Sequences of a single repeated digit
    (e.g. 111.111.111-11) pass the checksum but are not issued, so they are
    rejected.
    """
    numbers = digits_only(cpf)
    if len(numbers) != 11 or numbers == numbers[0] * 11:
        return False

    for position in (9, 10):
        total = sum(int(numbers[i]) * (position + 1 - i) for i in range(position))
        remainder = total % 11
        check_digit = 0 if remainder < 2 else 11 - remainder
        if int(numbers[position]) != check_digit:
            return False

    return True


def is_valid_phone(phone: str) -> bool:
    """Landline (10 digits) or mobile (11 digits), area code included"""
    return len(digits_only(phone)) in (10, 11)


def format_cpf(cpf: str) -> str:
    numbers = digits_only(cpf)
    return f"{numbers[:3]}.{numbers[3:6]}.{numbers[6:9]}-{numbers[9:]}"
