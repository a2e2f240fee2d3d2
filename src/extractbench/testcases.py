from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

from extractbench.models import TestCase
from extractbench.schema import UserProfile

DEFAULT_TEST_CASES: tuple[TestCase, ...] = (
    TestCase(
        description="Complete profile in a single sentence",
        content=(
            "Hi, I'm Anna Petrova, 34 years old, admin of our team. Reach me at anna.petrova@gmail.com. "
            "I live at 12 Lenina St, Moscow, 101000. I love hiking and photography."
        ),
        validator=lambda p: (
            p.name == "Anna Petrova"
            and p.age == 34
            and p.email == "anna.petrova@gmail.com"
            and p.role == "admin"
            and p.address is not None
            and p.address.city == "Moscow"
        ),
    ),
    TestCase(
        description="Short intro with name, age and email",
        content="Meet John, 29yo, john@x.com",
        validator=lambda p: p.name is not None and "John" in p.name and p.age == 29,
    ),
    TestCase(
        description="Guest user without email",
        content="A guest named Carlos Ruiz visited the portal yesterday. He is 41.",
        validator=lambda p: p.role == "guest" and p.age == 41 and p.email is None,
    ),
    TestCase(
        description="Hobbies list",
        content="Maria (maria@mail.org) enjoys chess, swimming and baking.",
        validator=lambda p: p.hobbies is not None and {"chess", "swimming", "baking"} <= {h.lower() for h in p.hobbies},
    ),
    TestCase(
        description="Address without zip code",
        content="Send the package to Peter Smith, 221B Baker Street, London.",
        validator=lambda p: (
            p.address is not None
            and p.address.city == "London"
            and p.address.zipCode is None
        ),
    ),
    TestCase(
        description="No personal data at all",
        content="The weather is nice today and the meeting was moved to Friday.",
        validator=lambda p: p.name is None and p.email is None and p.age is None,
    ),
    TestCase(
        description="Regular user in noisy chat log",
        content=(
            "[10:02] bot: welcome!! [10:03] user42: hey, name's Li Wei, regular user here, "
            "email liwei@corp.cn, 27 y.o. btw [10:04] bot: noted"
        ),
        validator=lambda p: p.name == "Li Wei" and p.role == "user" and p.age == 27,
    ),
    TestCase(
        description="Non-English text",
        content="Меня зовут Иван Иванов, мне 45 лет. Почта: ivan@yandex.ru. Город: Казань.",
        validator=lambda p: p.age == 45 and p.email == "ivan@yandex.ru",
    ),
    TestCase(
        description="Schema conformance only",
        content="Olga, admin, olga@site.io, likes running.",
    ),
)


def load_test_cases(path: Path) -> list[TestCase]:
    """Load test cases from a JSON list of ``{description, content, expected?}`` objects.

    ``expected`` is a partial profile; the case passes when every listed field
    matches the extracted value.
    """
    data = json.loads(path.read_text())
    if not isinstance(data, list):
        raise ValueError("Test case file must contain a JSON list.")
    test_cases = []
    for idx, item in enumerate(data):
        if not isinstance(item, dict) or "content" not in item:
            raise ValueError(f"Test case #{idx} must be an object with a 'content' field.")
        expected = item.get("expected")
        test_cases.append(
            TestCase(
                description=item.get("description") or f"Case {idx + 1}",
                content=item["content"],
                validator=expected_validator(expected) if expected is not None else None,
            )
        )
    return test_cases


def expected_validator(expected: dict[str, Any]) -> Callable[[UserProfile], bool]:
    def validate(profile: UserProfile) -> bool:
        return _matches(expected, profile.model_dump())

    return validate


def _matches(expected: Any, actual: Any) -> bool:
    if isinstance(expected, dict):
        if not isinstance(actual, dict):
            return False
        return all(_matches(value, actual.get(key)) for key, value in expected.items())
    return expected == actual
