import random

import pytest

from mindmeld.game.errors import CodeGenerationError
from mindmeld.utils.codes import ALPHABET, MAX_ATTEMPTS, generate_code


def test_code_uses_unambiguous_alphabet():
    code = generate_code()
    assert len(code) == 5
    assert all(ch in ALPHABET for ch in code)
    assert not set("IO01") & set(ALPHABET)


def test_code_skips_codes_in_use(monkeypatch):
    picks = iter([list("AAAAA"), list("BBBBB")])
    monkeypatch.setattr(random, "choices", lambda alphabet, k: next(picks))
    assert generate_code({"AAAAA"}) == "BBBBB"


def test_code_generation_gives_up_after_bounded_attempts(monkeypatch):
    calls = []

    def always_same(alphabet, k):
        calls.append(k)
        return list("ZZZ")

    monkeypatch.setattr(random, "choices", always_same)
    with pytest.raises(CodeGenerationError):
        generate_code({"ZZZ"}, length=3)
    assert len(calls) == MAX_ATTEMPTS
