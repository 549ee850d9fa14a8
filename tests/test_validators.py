from __future__ import annotations

from conftest import valid_hotel

from backoffice.entities import get_entity
from backoffice.validators import FieldConstraint, check_field, label_for, validate_document, validate_field


def test_required_comes_first():
    found = check_field("  ", FieldConstraint(label="Name", required=True, max_length=3))
    assert found.kind == "required"
    assert found.message == "Name is required"


def test_type_beats_range():
    price = FieldConstraint(label="Price", type="number", required=True, min=0)
    assert validate_field("abc", price) == "Price must be a number"
    assert validate_field(-1, price) == "Price must be at least 0"


def test_zero_counts_as_missing_when_not_allowed():
    rating = FieldConstraint(label="Rating", type="number", required=True, allow_zero=False, min=1, max=7)
    assert check_field(0, rating).kind == "required"
    assert validate_field(9, rating) == "Rating must be between 1 and 7"
    assert validate_field(5, rating) is None


def test_formats():
    email = FieldConstraint(label="Email", type="email")
    assert validate_field("foo@bar", email) == "Email must be a valid email address"
    assert validate_field("agent@example.com", email) is None

    image = FieldConstraint(label="Gallery image", type="image")
    assert validate_field("https://cdn.example.com/a.PNG", image) is None
    assert validate_field("https://cdn.example.com/a.pdf", image) is not None


def test_custom_messages_and_length():
    status = FieldConstraint(choices=["Operational", "Sold"], messages={"choice": "Invalid status value"})
    assert validate_field("Demolished", status) == "Invalid status value"

    name = FieldConstraint(label="Name", max_length=3)
    assert validate_field("abcd", name) == "Name cannot exceed 3 characters"


def test_label_for_humanizes_last_segment():
    assert label_for("roomsSuites.0.sizeNumeric") == "Size numeric"
    assert label_for("name") == "Name"


def test_empty_hotel_reports_required_fields():
    schema = get_entity("hotel")
    result = validate_document(schema.empty_document(), schema)

    assert result.errors["name"] == "Hotel name is required"
    assert result.errors["price.totalNumeric"] == "Price is required"
    assert result.errors["roomsSuites"] == "At least one room/suite type is required"
    assert "rating" not in result.errors
    assert "wellness.name" not in result.errors
    assert "Adding gallery images will improve the hotel listing" in result.warnings


def test_list_items_and_conditional_branches():
    schema = get_entity("hotel")
    doc = valid_hotel()
    doc["roomsSuites"].append({"name": "", "size": "40 sqm", "description": "Twin", "features": ["Desk"], "count": 4})
    doc["wellness"] = {"name": ""}

    errors = validate_document(doc, schema).errors

    assert errors["roomsSuites.1.name"] == "Room/suite name is required"
    assert errors["wellness.name"] == "Wellness facility name is required"
    assert "roomsSuites.0.name" not in errors


def test_cross_field_rules():
    schema = get_entity("hotel")
    doc = valid_hotel()
    doc.update({"yearBuilt": 2000, "yearOpened": 1990, "totalSuites": 300})

    errors = validate_document(doc, schema).errors

    assert errors["yearOpened"] == "Year opened cannot precede year built"
    assert errors["totalSuites"] == "Total suites cannot exceed total rooms"


def test_valid_hotel_passes():
    schema = get_entity("hotel")
    assert validate_document(valid_hotel(), schema).is_valid


def test_payment_plan_only_checked_when_enabled():
    schema = get_entity("property")
    doc = schema.empty_document()

    errors = validate_document(doc, schema).errors
    assert "paymentPlan.booking" not in errors

    doc["hasPaymentPlan"] = True
    doc["paymentPlan"]["construction"] = [{"milestone": "Foundation", "percentage": ""}]
    errors = validate_document(doc, schema).errors
    assert errors["paymentPlan.booking"] == "Booking percentage is required for payment plan"
    assert errors["paymentPlan.construction.0.percentage"] == "Construction milestone percentage is required"
