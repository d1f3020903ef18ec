# harness/entity_generator.py
"""
Synthetic entity generator.

Produces patients, addresses, tubes, identifiers and dates shifted from
"today" for boundary testing. Names and street data come from Faker; digits
and enum picks come from a private random.Random so a seed reproduces a run.

Usage:
    gen = EntityGenerator(seed=7)
    order = gen.standing_order(date_of_service=gen.date(5))
"""

from __future__ import annotations

import logging
import random
from dataclasses import replace
from datetime import date, timedelta
from typing import Callable, Optional, Sequence

from faker import Faker

from harness.models import Address, OrderRequest, PatientData, TubeSpec

logger = logging.getLogger(__name__)

# ==================== Constants ====================

DATE_FORMAT = "%m-%d-%Y"

GENDERS = ("MALE", "FEMALE", "OTHER")
ETHNICITIES = ("ASIAN", "HISPANIC", "CAUCASIAN", "AFRICAN AMERICAN", "OTHER")

# Roughly 27 years back from today
DEFAULT_DOB_OFFSET = -10000

DEFAULT_PHYSICIAN_NPI = "1093767972"
DEFAULT_SERVICES = ("STOOL SPECIMEN PICKUP",)
DEFAULT_ORDER_CODES = ("RPP COVID19",)
DEFAULT_ICD10_CODES = ("A21.8", "A04.9")
DEFAULT_TUBE = ("NASAL SWAB", 1)


class EntityGenerator:
    """Builds test entities; one instance per scenario"""

    def __init__(
        self,
        seed: Optional[int] = None,
        clock: Optional[Callable[[], date]] = None,
        faker: Optional[Faker] = None,
    ):
        self._random = random.Random(seed)
        self._clock = clock or date.today
        self.faker = faker or Faker("en_US")
        if seed is not None:
            self.faker.seed_instance(seed)

    # ==================== Primitives ====================

    def today(self) -> date:
        return self._clock()

    def date(self, offset_days: int) -> str:
        """Today shifted by offset_days, formatted MM-dd-yyyy."""
        return (self._clock() + timedelta(days=offset_days)).strftime(DATE_FORMAT)

    def phone_number(self) -> str:
        return f"9{self._random.randrange(10**9):09d}"

    def facility_account_number(self) -> str:
        return f"TG{self._random.randrange(10**7):07d}"

    def choice(self, options: Sequence[str]) -> str:
        return self._random.choice(list(options))

    # ==================== Builders ====================

    def address(
        self,
        line1: Optional[str] = None,
        city: Optional[str] = None,
        state: Optional[str] = None,
        zip: Optional[str] = None,
    ) -> Address:
        return Address(
            line1=line1 if line1 is not None else self.faker.street_address(),
            city=city if city is not None else self.faker.city().upper(),
            state=state if state is not None else self.faker.state().upper(),
            zip=zip if zip is not None else self.faker.zipcode()[:5],
        )

    def tube(self, name: str, count: int) -> TubeSpec:
        return TubeSpec(name=name, count=count)

    def patient(self, **overrides) -> PatientData:
        """Random patient; any PatientData field can be overridden."""
        first = overrides.pop("first", None) or self.faker.first_name()
        last = overrides.pop("last", None) or self.faker.last_name()
        ethnicity = overrides.pop("ethnicity", None) or self.choice(ETHNICITIES)

        patient = PatientData(
            first=first,
            last=last,
            dob=self.date(DEFAULT_DOB_OFFSET),
            gender=self.choice(GENDERS),
            email=f"{first.lower()}.{last.lower()}@test.com",
            phone=self.phone_number(),
            homebound=False,
            ethnicity=ethnicity,
            race=ethnicity,
            hardstick=False,
            addresses=(self.address(),),
        )
        if "addresses" in overrides:
            overrides["addresses"] = tuple(overrides["addresses"])
        return replace(patient, **overrides) if overrides else patient

    def standing_order(self, patient: Optional[PatientData] = None, **overrides) -> OrderRequest:
        """
        Valid standing order: DAILY from tomorrow for four days, service date
        five days out, service address taken from the patient's first address.
        """
        patient = patient or self.patient()
        service_address = patient.addresses[0] if patient.addresses else self.address()

        order = OrderRequest(
            order_type="STANDING ORDER",
            facility_account=self.facility_account_number(),
            physician_npi=DEFAULT_PHYSICIAN_NPI,
            patient_data=patient,
            services=DEFAULT_SERVICES,
            order_codes=DEFAULT_ORDER_CODES,
            icd10_codes=DEFAULT_ICD10_CODES,
            standing_start=self.date(1),
            standing_end=self.date(4),
            frequency="DAILY",
            date_of_service=self.date(5),
            service_address=service_address,
            billing_type="CLIENT",
            is_stat=False,
            fasting=True,
            tube_data=(self.tube(*DEFAULT_TUBE),),
            service_address_string=service_address.one_line(),
        )
        for key in ("services", "order_codes", "icd10_codes", "tube_data"):
            if key in overrides:
                overrides[key] = tuple(overrides[key])
        if overrides:
            order = replace(order, **overrides)
        logger.debug(
            f"Generated order {order.order_type} for {patient.full_name} "
            f"({order.standing_start} → {order.standing_end})"
        )
        return order
