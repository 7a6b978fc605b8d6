"""
End-to-end tests of a form session.

A session is driven exactly as a UI adapter would drive it: initialize,
then feed user input and read the store.
"""

import asyncio

import pytest

from formcascade.config import FormConfig
from formcascade.session import FormSession


def run(coro):
    return asyncio.run(coro)


def visible(session, name):
    return session.store.get(name).visible


def value(session, name):
    return session.store.get(name).value


@pytest.fixture
def make_session(make_data_store, example_data):
    def make(config=None, data=None, failing=(), **kwargs):
        data_store = make_data_store(example_data if data is None else data, failing=failing)
        session = FormSession(config or FormConfig(), data_store=data_store, **kwargs)
        run(session.initialize())
        return session

    return make


class TestAcademicChain:
    """Academic level -> faculty -> program -> period."""

    def test_hidden_until_applicant(self, make_session):
        session = make_session()
        for name in ("academic_level", "faculty", "program", "admission_period"):
            assert not visible(session, name)
        assert visible(session, "type_attendee")

    def test_single_program_scenario(self, make_session):
        """programs: [P1] resolves every upper level and shows the periods."""
        data = {
            "programs": {"PREG": {"ENG": {"Programas": [{"Codigo": "P1", "Nombre": "CS"}]}}},
            "periods": {"PREG": {"2025-1": "202510", "2025-2": "202530"}},
            "locations": {},
            "prefixes": [],
        }
        session = make_session(FormConfig(programs=["P1"]), data=data)

        run(session.handle_input("type_attendee", "Aspirante"))

        assert (visible(session, "academic_level"), value(session, "academic_level")) == (False, "PREG")
        assert (visible(session, "faculty"), value(session, "faculty")) == (False, "ENG")
        assert (visible(session, "program"), value(session, "program")) == (False, "P1")
        period = session.store.get("admission_period")
        assert period.visible is True
        assert [o.value for o in period.options] == ["202510", "202530"]

    def test_program_list_on_full_dataset(self, make_session):
        session = make_session(FormConfig(programs=["P1", "P2"]))

        run(session.handle_input("type_attendee", "Aspirante"))

        assert value(session, "academic_level") == "PREG"
        assert value(session, "faculty") == "ENG"
        assert visible(session, "program")
        assert not visible(session, "admission_period")

        run(session.handle_input("program", "P2"))
        assert visible(session, "admission_period")
        assert session.program_details()["faculty"] == "ENG"

    def test_user_walks_down_the_chain(self, make_session):
        session = make_session()
        run(session.handle_input("type_attendee", "Aspirante"))
        assert visible(session, "academic_level")
        assert not visible(session, "faculty")

        run(session.handle_input("academic_level", "GRAD"))
        assert [o.value for o in session.store.get("faculty").options] == ["ENG", "MED"]

        run(session.handle_input("faculty", "ENG"))
        assert (visible(session, "program"), value(session, "program")) == (False, "P4")
        assert (visible(session, "admission_period"), value(session, "admission_period")) == (False, "202530")

    def test_leaving_applicant_type_clears_chain(self, make_session):
        session = make_session()
        run(session.handle_input("type_attendee", "Aspirante"))
        run(session.handle_input("academic_level", "PREG"))

        run(session.handle_input("type_attendee", "Padre de familia"))

        for name in ("academic_level", "faculty", "program", "admission_period"):
            assert not visible(session, name)
            assert value(session, name) == ""

    def test_programs_unavailable(self, make_session, example_data):
        data = {k: v for k, v in example_data.items() if k != "programs"}
        session = make_session(data=data, failing=("programs",))

        run(session.handle_input("type_attendee", "Aspirante"))

        assert not visible(session, "academic_level")
        assert visible(session, "country")


class TestLocationChain:
    """Country -> department -> city."""

    def test_default_country_preselected(self, make_session):
        session = make_session()
        assert visible(session, "country")
        assert value(session, "country") == "COL"
        assert visible(session, "department")
        assert not visible(session, "city")

    def test_no_default_country(self, make_session):
        session = make_session(FormConfig(default_country=None))
        assert value(session, "country") == ""
        assert not visible(session, "department")

    def test_department_with_one_city(self, make_session):
        session = make_session()
        run(session.handle_input("department", "11"))
        assert (visible(session, "city"), value(session, "city")) == (False, "11001")

    def test_department_with_several_cities(self, make_session):
        session = make_session()
        run(session.handle_input("department", "05"))
        assert visible(session, "city")
        assert value(session, "city") == ""

    def test_country_without_departments(self, make_session):
        session = make_session()
        run(session.handle_input("department", "05"))
        run(session.handle_input("city", "05001"))

        run(session.handle_input("country", "USA"))

        for name in ("department", "city"):
            assert not visible(session, name)
            assert value(session, name) == ""


class TestPhoneCode:
    """phone_code options and preselection from the prefixes dataset."""

    def test_options_from_prefixes(self, make_session):
        session = make_session()
        state = session.store.get("phone_code")
        assert state.visible
        assert [o.value for o in state.options] == ["+57", "+1"]

    def test_follows_default_country(self, make_session):
        session = make_session()
        assert value(session, "phone_code") == "+57"

    def test_follows_country_change(self, make_session):
        session = make_session()
        run(session.handle_input("country", "USA"))
        assert value(session, "phone_code") == "+1"

    def test_user_choice_is_kept(self, make_session):
        session = make_session()
        run(session.handle_input("phone_code", "+1"))
        run(session.handle_input("country", "COL"))
        assert value(session, "phone_code") == "+1"

    def test_prefixes_unavailable(self, make_session, example_data):
        data = {k: v for k, v in example_data.items() if k != "prefixes"}
        session = make_session(data=data, failing=("prefixes",))

        assert session.store.get("phone_code").options == []
        assert value(session, "phone_code") == ""
        assert value(session, "country") == "COL"


class TestLifecycle:
    """Validation, snapshot, reset and destroy."""

    def test_validate_skips_hidden_fields(self, make_session):
        session = make_session()

        errors = session.validate()

        assert set(errors) == {"type_attendee", "department"}
        assert session.store.get("department").validation_error is not None
        assert session.store.get("faculty").validation_error is None

    def test_snapshot(self, make_session):
        session = make_session(extra_fields=["email"])
        run(session.handle_input("email", "ana@example.org"))
        run(session.handle_input("department", "11"))

        snapshot = session.snapshot()

        assert snapshot["country"] == "COL"
        assert snapshot["city"] == "11001"
        assert snapshot["email"] == "ana@example.org"
        assert "faculty" not in snapshot

    def test_input_marks_touched(self, make_session):
        session = make_session()
        run(session.handle_input("type_attendee", "Aspirante"))
        assert session.store.get("type_attendee").touched is True
        assert session.store.get("academic_level").touched is False

    def test_reset(self, make_session):
        session = make_session()
        run(session.handle_input("type_attendee", "Aspirante"))
        run(session.handle_input("department", "05"))

        run(session.reset())

        assert value(session, "type_attendee") == ""
        assert not visible(session, "academic_level")
        assert value(session, "country") == "COL"
        assert value(session, "department") == ""

    def test_destroy(self, make_session):
        session = make_session()
        seen = []
        session.subscribe("*", lambda name, state: seen.append(name))

        session.destroy()
        run(session.handle_input("type_attendee", "Aspirante"))

        assert session.destroyed
        assert seen == []
        assert value(session, "type_attendee") == ""

    def test_reset_and_initialize_after_destroy_do_nothing(self, make_session):
        session = make_session()
        run(session.handle_input("department", "05"))
        seen = []
        session.store.subscribe("*", lambda name, state: seen.append(name))

        session.destroy()
        run(session.reset())
        run(session.initialize())

        assert seen == []
        assert value(session, "department") == "05"
