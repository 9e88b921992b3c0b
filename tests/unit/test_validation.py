from crm.validation import (
    is_valid_email,
    validate_client,
    validate_profile,
    validate_property,
)


def test_email_format():
    assert is_valid_email("broker@example.com")
    assert not is_valid_email("broker@example")
    assert not is_valid_email("")


def test_client_name_required_unless_partial():
    assert validate_client({}) == ["Client name is required"]
    assert validate_client({}, partial=True) == []
    assert validate_client({"name": "Ana", "email": "nope"}) == ["Please enter a valid email address"]
    assert validate_client({"name": "Ana", "phone": "1" * 25}) == ["Phone number too long"]


def test_profile_commission_rate():
    assert validate_profile({"commission_rate": 2}) == []
    assert validate_profile({"commission_rate": 150}) == ["Commission rate must be between 0 and 100"]
    assert validate_profile({"commission_rate": "abc"}) == ["Commission rate must be a number"]
    assert validate_profile({"full_name": "A"}) == ["Name must be at least 2 characters"]


def test_property_fields():
    valid = {"project_name": "Marina Gate", "purchase_price": 1_500_000, "purchase_date": "2024-02-01"}
    assert validate_property(valid) == []
    assert validate_property({"purchase_price": 0}, partial=True) == ["Purchase price must be greater than zero"]
    assert "Purchase date must be YYYY-MM-DD" in validate_property({**valid, "purchase_date": "01/02/2024"})


def test_non_text_fields_are_treated_as_missing():
    assert validate_client({"name": 42}) == ["Client name is required"]
    assert validate_property({"project_name": ["Creek"], "purchase_price": 1, "purchase_date": "2024-01-01"}) == [
        "Project name is required"
    ]
