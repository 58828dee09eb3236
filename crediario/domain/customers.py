"""Customer registration rules"""

from dataclasses import replace
from datetime import datetime
from typing import Optional

from crediario.domain.exceptions import CustomerValidationError
from crediario.domain.models import Customer, Eligibility
from crediario.utils.identity import IdGenerator, UUIDGenerator
from crediario.utils.validators import digits_only, is_valid_cpf, is_valid_phone


def register_customer(
    name: str,
    phone: str,
    cpf: str,
    address: str,
    nickname: Optional[str] = None,
    eligibility: Eligibility = Eligibility.ELIGIBLE,
    *,
    now: datetime,
    ids: Optional[IdGenerator] = None,
) -> Customer:
    """
    Build a new customer record.

    CPF and phone are stored as digits only.

    Raises:
        CustomerValidationError: blank name, invalid CPF or phone
    """
    if not name.strip():
        raise CustomerValidationError("Customer name is required")
    if not is_valid_cpf(cpf):
        raise CustomerValidationError("Invalid CPF")
    if not is_valid_phone(phone):
        raise CustomerValidationError("Phone must have 10 or 11 digits including area code")

    return Customer(
        customer_id=(ids or UUIDGenerator()).new_id(),
        name=name.strip(),
        nickname=nickname.strip() if nickname else None,
        phone=digits_only(phone),
        cpf=digits_only(cpf),
        address=address.strip(),
        eligibility=eligibility,
        created_at=now,
        updated_at=now,
    )


def toggle_eligibility(customer: Customer, now: datetime) -> Customer:
    flipped = Eligibility.NOT_ELIGIBLE if customer.eligibility == Eligibility.ELIGIBLE else Eligibility.ELIGIBLE
    return replace(customer, eligibility=flipped, updated_at=now)
