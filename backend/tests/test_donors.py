import pytest

from bookstall.models import Donor
from bookstall.services import donor_service
from bookstall.services.donor_service import DonorNotFound
from bookstall.validation import ValidationError


def test_donor_codes_are_sequential_from_seed(db_session, alice, bob):
    carol = donor_service.create_donor({"name": "Carol"})

    assert [alice.donor_code, bob.donor_code, carol.donor_code] == ["501", "502", "503"]


def test_donor_code_is_never_reused_after_deletion(db_session, alice, bob):
    db_session.delete(db_session.get(Donor, bob.id))
    db_session.commit()

    carol = donor_service.create_donor({"name": "Carol"})

    assert carol.donor_code == "503"


def test_first_donor_code_skips_existing_rows(db_session):
    db_session.add(Donor(donor_code="640", name="Imported donor"))
    db_session.commit()

    donor = donor_service.create_donor({"name": "New donor"})

    assert donor.donor_code == "641"


def test_create_donor_requires_name(db_session):
    with pytest.raises(ValidationError):
        donor_service.create_donor({"name": "  "})


def test_update_ignores_donor_code(db_session, alice):
    donor = donor_service.update_donor(alice.id, {"phone": "555-0000", "donor_code": "999"})

    assert donor.phone == "555-0000"
    assert donor.donor_code == "501"


def test_toggle_status_and_filter(db_session, alice, bob):
    donor_service.toggle_donor_status(bob.id)

    assert [d.name for d in donor_service.list_donors(active=True)] == ["Alice Johnson"]
    assert [d.name for d in donor_service.list_donors(active=False)] == ["Bob Williams"]
    assert len(donor_service.list_donors()) == 2


def test_get_unknown_donor(db_session):
    with pytest.raises(DonorNotFound):
        donor_service.get_donor(9999)


def test_donor_endpoints(client, db_session):
    created = client.post("/api/donors", json={"name": "Alice Johnson", "email": "alice@example.com"})
    assert created.status_code == 201
    donor = created.json
    assert donor["donor_code"] == "501"
    assert donor["is_active"] is True

    assert client.post("/api/donors", json={"email": "x@example.com"}).status_code == 400
    assert client.post("/api/donors", json={"name": "Eve", "donor_code": "1"}).status_code == 400

    updated = client.put(f"/api/donors/{donor['id']}", json={"phone": "555-1234"})
    assert updated.status_code == 200
    assert updated.json["phone"] == "555-1234"

    toggled = client.patch(f"/api/donors/{donor['id']}/toggle-status")
    assert toggled.json["is_active"] is False

    assert client.get("/api/donors?active=false").json["count"] == 1
    assert client.get("/api/donors?active=true").json["count"] == 0
    assert client.get("/api/donors?active=maybe").status_code == 400
    assert client.get(f"/api/donors/{donor['id']}").json["name"] == "Alice Johnson"
    assert client.get("/api/donors/9999").status_code == 404
    assert client.put("/api/donors/9999", json={"phone": "1"}).status_code == 404
