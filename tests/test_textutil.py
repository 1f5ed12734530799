import pytest

from n9e.textutil import dangerous, is_mail, is_phone


@pytest.mark.parametrize("text", ["<script>", "a>b", "x&y", "it's", 'say "hi"', "file://etc", "../up"])
def test_dangerous_detects(text):
    assert dangerous(text) is True


@pytest.mark.parametrize("text", ["", "plain name", "team-01_ops", "a.b"])
def test_dangerous_allows(text):
    assert dangerous(text) is False


@pytest.mark.parametrize("text", ["", "abc", "12", "phone-number"])
def test_is_phone_rejects(text):
    assert is_phone(text) is False


def test_is_mail_accepts():
    assert is_mail("user@example.com") is True
    assert is_mail("first.last@mail.example.com") is True


@pytest.mark.parametrize("text", ["", "user", "user@", "@example.com", "user@example"])
def test_is_mail_rejects(text):
    assert is_mail(text) is False