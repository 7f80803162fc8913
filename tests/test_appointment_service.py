"""Tests for the appointment scheduler service."""

from datetime import date, timedelta
from uuid import uuid4

import pytest
from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from medclinic.core.exceptions import (
    ConflictException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from medclinic.models import appointments, patients
from medclinic.schemas.appointments import (
    AppointmentCreate,
    AppointmentDetails,
    AppointmentFilters,
    AppointmentStatus,
    AppointmentUpdate,
    RegisterAndBookRequest,
)
from medclinic.schemas.common import PageParams
from medclinic.schemas.patients import PatientCreate
from medclinic.services.appointment_service import AppointmentService, ensure_transition


@pytest.fixture
def service(db_session) -> AppointmentService:
    return AppointmentService(db_session)


@pytest.fixture
async def other_service(db_engine):
    """A second service on its own session, like an overlapping request."""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield AppointmentService(session)


@pytest.fixture
def read_before(monkeypatch):
    """Make ``service`` act on the appointment row as it was when this was called."""

    async def _read_before(service: AppointmentService, appointment_id) -> None:
        snapshot = await service.store.get(appointment_id)

        async def stale_get(record_id):
            return dict(snapshot)

        monkeypatch.setattr(service.store, "get", stale_get)

    return _read_before


@pytest.fixture
def new_booking(patient, doctor, department, future_date):
    """Build an AppointmentCreate, overriding any field."""

    def _new_booking(**overrides) -> AppointmentCreate:
        data = {
            "patient_id": patient["id"],
            "doctor_id": doctor["id"],
            "department_id": department["id"],
            "appointment_date": future_date,
            "appointment_time": "10:00",
            **overrides,
        }
        return AppointmentCreate(**data)

    return _new_booking


class TestTransitions:
    """The status lifecycle."""

    @pytest.mark.parametrize("target", [AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW])
    def test_active_can_end(self, target) -> None:
        ensure_transition(AppointmentStatus.ACTIVE, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            ("active", "active"),
            ("cancelled", "active"),
            ("cancelled", "no-show"),
            ("cancelled", "cancelled"),
            ("no-show", "active"),
            ("no-show", "cancelled"),
        ],
    )
    def test_undefined_transitions_are_rejected(self, current, target) -> None:
        with pytest.raises(InvalidTransitionException):
            ensure_transition(current, target)


class TestCreateAppointment:
    @pytest.mark.asyncio
    async def test_books_active_appointment(self, service, new_booking, test_user) -> None:
        appointment = await service.create_appointment(
            new_booking(symptoms=["  cough ", ""]), test_user["id"]
        )

        assert appointment.status == AppointmentStatus.ACTIVE
        assert appointment.created_by == test_user["id"]
        assert appointment.symptoms == ["cough"]
        assert appointment.registration_fee == 20
        assert appointment.cancelled_at is None

    @pytest.mark.asyncio
    async def test_same_slot_conflicts(self, service, new_booking, make_patient, test_user) -> None:
        await service.create_appointment(new_booking(), test_user["id"])
        other = await make_patient()

        with pytest.raises(ConflictException):
            await service.create_appointment(new_booking(patient_id=other["id"]), test_user["id"])

    @pytest.mark.asyncio
    async def test_other_time_or_doctor_is_free(
        self, service, new_booking, make_doctor, test_user
    ) -> None:
        await service.create_appointment(new_booking(), test_user["id"])
        second_doctor = await make_doctor()

        await service.create_appointment(new_booking(appointment_time="10:30"), test_user["id"])
        await service.create_appointment(new_booking(doctor_id=second_doctor["id"]), test_user["id"])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["patient_id", "doctor_id", "department_id"])
    async def test_missing_reference(self, service, new_booking, test_user, field) -> None:
        with pytest.raises(NotFoundException):
            await service.create_appointment(new_booking(**{field: uuid4()}), test_user["id"])

    @pytest.mark.asyncio
    async def test_inactive_doctor(self, service, new_booking, make_doctor, test_user) -> None:
        retired = await make_doctor(active=False)
        with pytest.raises(ValidationException, match="Doctor is not active"):
            await service.create_appointment(new_booking(doctor_id=retired["id"]), test_user["id"])

    @pytest.mark.asyncio
    async def test_past_date(self, service, new_booking, test_user) -> None:
        with pytest.raises(ValidationException, match="past date"):
            await service.create_appointment(
                new_booking(appointment_date=date.today() - timedelta(days=1)), test_user["id"]
            )

    @pytest.mark.asyncio
    async def test_today_is_bookable(self, service, new_booking, test_user) -> None:
        appointment = await service.create_appointment(
            new_booking(appointment_date=date.today()), test_user["id"]
        )
        assert appointment.appointment_date == date.today()

    @pytest.mark.asyncio
    async def test_outside_doctor_hours(self, service, new_booking, make_doctor, test_user) -> None:
        with pytest.raises(ValidationException, match="not available"):
            await service.create_appointment(new_booking(appointment_time="19:30"), test_user["id"])

        no_schedule = await make_doctor(availability=[])
        with pytest.raises(ValidationException, match="not available"):
            await service.create_appointment(
                new_booking(doctor_id=no_schedule["id"]), test_user["id"]
            )

    @pytest.mark.asyncio
    async def test_storage_rejects_double_booking_when_check_is_bypassed(
        self, service, new_booking, make_patient, test_user, monkeypatch
    ) -> None:
        await service.create_appointment(new_booking(), test_user["id"])

        async def always_free(*args, **kwargs) -> bool:
            return True

        monkeypatch.setattr(service, "is_slot_available", always_free)
        other = await make_patient()

        with pytest.raises(ConflictException):
            await service.create_appointment(new_booking(patient_id=other["id"]), test_user["id"])

        listing = await service.list_appointments(AppointmentFilters())
        assert listing.total == 1


class TestSlotConstraint:
    """The unique index on live slots, exercised without the service."""

    async def _insert(self, db_session, patient, doctor, department, user, day, status="active"):
        await db_session.execute(
            insert(appointments).values(
                patient_id=patient["id"],
                doctor_id=doctor["id"],
                department_id=department["id"],
                created_by=user["id"],
                appointment_date=day,
                appointment_time="09:00",
                status=status,
            )
        )
        await db_session.commit()

    @pytest.mark.asyncio
    async def test_two_live_rows_are_rejected(
        self, db_session, patient, doctor, department, test_user, future_date
    ) -> None:
        await self._insert(db_session, patient, doctor, department, test_user, future_date)
        with pytest.raises(IntegrityError):
            await self._insert(
                db_session, patient, doctor, department, test_user, future_date, status="no-show"
            )
        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_cancelled_rows_do_not_hold_the_slot(
        self, db_session, patient, doctor, department, test_user, future_date
    ) -> None:
        for _ in range(2):
            await self._insert(
                db_session, patient, doctor, department, test_user, future_date, status="cancelled"
            )
        await self._insert(db_session, patient, doctor, department, test_user, future_date)


class TestSlotAvailability:
    @pytest.mark.asyncio
    async def test_reports_taken_and_freed_slots(
        self, service, new_booking, doctor, future_date, test_user
    ) -> None:
        assert await service.is_slot_available(doctor["id"], future_date, "10:00")

        appointment = await service.create_appointment(new_booking(), test_user["id"])
        assert not await service.is_slot_available(doctor["id"], future_date, "10:00")
        assert await service.is_slot_available(
            doctor["id"], future_date, "10:00", exclude_appointment_id=appointment.id
        )

        await service.cancel_appointment(appointment.id)
        assert await service.is_slot_available(doctor["id"], future_date, "10:00")

    @pytest.mark.asyncio
    async def test_no_show_keeps_the_slot(
        self, service, new_booking, doctor, future_date, test_user
    ) -> None:
        appointment = await service.create_appointment(new_booking(), test_user["id"])
        await service.mark_no_show(appointment.id)
        assert not await service.is_slot_available(doctor["id"], future_date, "10:00")


class TestStatusChanges:
    @pytest.mark.asyncio
    async def test_cancel_then_rebook(self, service, new_booking, make_patient, test_user) -> None:
        first = await service.create_appointment(new_booking(), test_user["id"])

        cancelled = await service.cancel_appointment(first.id)
        assert cancelled.status == AppointmentStatus.CANCELLED
        assert cancelled.cancelled_at is not None

        other = await make_patient()
        rebooked = await service.create_appointment(
            new_booking(patient_id=other["id"]), test_user["id"]
        )
        assert rebooked.status == AppointmentStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_terminal_states_are_final(self, service, new_booking, test_user) -> None:
        appointment = await service.create_appointment(new_booking(), test_user["id"])
        await service.mark_no_show(appointment.id)

        with pytest.raises(InvalidTransitionException):
            await service.cancel_appointment(appointment.id)
        with pytest.raises(InvalidTransitionException):
            await service.update_status(appointment.id, AppointmentStatus.ACTIVE)

        current = await service.get_appointment(appointment.id)
        assert current.status == AppointmentStatus.NO_SHOW

    @pytest.mark.asyncio
    async def test_no_show_after_concurrent_cancel_is_rejected(
        self, service, other_service, read_before, new_booking, test_user
    ) -> None:
        appointment = await service.create_appointment(new_booking(), test_user["id"])
        await read_before(other_service, appointment.id)

        await service.cancel_appointment(appointment.id)
        with pytest.raises(InvalidTransitionException):
            await other_service.mark_no_show(appointment.id)

        current = await service.get_appointment(appointment.id)
        assert current.status == AppointmentStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_stale_no_show_cannot_reclaim_rebooked_slot(
        self,
        service,
        other_service,
        read_before,
        new_booking,
        make_patient,
        doctor,
        future_date,
        test_user,
    ) -> None:
        first = await service.create_appointment(new_booking(), test_user["id"])
        await read_before(other_service, first.id)

        await service.cancel_appointment(first.id)
        other = await make_patient()
        rebooked = await service.create_appointment(
            new_booking(patient_id=other["id"]), test_user["id"]
        )

        with pytest.raises(InvalidTransitionException):
            await other_service.mark_no_show(first.id)

        assert (await service.get_appointment(first.id)).status == AppointmentStatus.CANCELLED
        assert (await service.get_appointment(rebooked.id)).status == AppointmentStatus.ACTIVE
        assert not await service.is_slot_available(doctor["id"], future_date, "10:00")

    @pytest.mark.asyncio
    async def test_edit_after_concurrent_cancel_is_rejected(
        self, service, other_service, read_before, new_booking, test_user
    ) -> None:
        appointment = await service.create_appointment(new_booking(), test_user["id"])
        await read_before(other_service, appointment.id)

        await service.cancel_appointment(appointment.id)
        with pytest.raises(InvalidTransitionException):
            await other_service.update_appointment(
                appointment.id, AppointmentUpdate(notes="Moved to the afternoon")
            )

        current = await service.get_appointment(appointment.id)
        assert current.status == AppointmentStatus.CANCELLED
        assert current.notes is None

    @pytest.mark.asyncio
    async def test_status_change_on_deleted_appointment(
        self, service, other_service, read_before, new_booking, test_user
    ) -> None:
        appointment = await service.create_appointment(new_booking(), test_user["id"])
        await read_before(other_service, appointment.id)

        await service.delete_appointment(appointment.id)
        with pytest.raises(NotFoundException):
            await other_service.cancel_appointment(appointment.id)

    @pytest.mark.asyncio
    async def test_status_update_records_notes(self, service, new_booking, test_user) -> None:
        appointment = await service.create_appointment(new_booking(), test_user["id"])
        updated = await service.update_status(
            appointment.id, "cancelled", notes="Patient called to cancel"
        )
        assert updated.notes == "Patient called to cancel"

    @pytest.mark.asyncio
    async def test_unknown_appointment(self, service) -> None:
        with pytest.raises(NotFoundException):
            await service.cancel_appointment(uuid4())


class TestUpdateAppointment:
    @pytest.mark.asyncio
    async def test_reschedule_to_free_slot(self, service, new_booking, future_date, test_user) -> None:
        appointment = await service.create_appointment(new_booking(), test_user["id"])
        moved = await service.update_appointment(
            appointment.id,
            AppointmentUpdate(appointment_date=future_date + timedelta(days=1), appointment_time="11:00"),
        )
        assert moved.appointment_date == future_date + timedelta(days=1)
        assert moved.appointment_time == "11:00"

    @pytest.mark.asyncio
    async def test_keeping_own_slot_is_not_a_conflict(self, service, new_booking, test_user) -> None:
        appointment = await service.create_appointment(new_booking(), test_user["id"])
        updated = await service.update_appointment(
            appointment.id, AppointmentUpdate(appointment_time="10:00", notes="Bring lab results")
        )
        assert updated.notes == "Bring lab results"

    @pytest.mark.asyncio
    async def test_reschedule_into_taken_slot(
        self, service, new_booking, make_patient, test_user
    ) -> None:
        await service.create_appointment(new_booking(), test_user["id"])
        other = await make_patient()
        second = await service.create_appointment(
            new_booking(patient_id=other["id"], appointment_time="12:00"), test_user["id"]
        )

        with pytest.raises(ConflictException):
            await service.update_appointment(second.id, AppointmentUpdate(appointment_time="10:00"))

    @pytest.mark.asyncio
    async def test_move_to_inactive_doctor(
        self, service, new_booking, make_doctor, test_user
    ) -> None:
        appointment = await service.create_appointment(new_booking(), test_user["id"])
        retired = await make_doctor(active=False)
        with pytest.raises(ValidationException):
            await service.update_appointment(appointment.id, AppointmentUpdate(doctor_id=retired["id"]))

    @pytest.mark.asyncio
    async def test_cancelled_appointment_cannot_be_edited(
        self, service, new_booking, test_user
    ) -> None:
        appointment = await service.create_appointment(new_booking(), test_user["id"])
        await service.cancel_appointment(appointment.id)

        with pytest.raises(InvalidTransitionException):
            await service.update_appointment(appointment.id, AppointmentUpdate(notes="too late"))

    @pytest.mark.asyncio
    async def test_null_clears_notes_but_not_required_fields(
        self, service, new_booking, test_user
    ) -> None:
        appointment = await service.create_appointment(
            new_booking(notes="Fasting required"), test_user["id"]
        )

        updated = await service.update_appointment(
            appointment.id,
            AppointmentUpdate(notes=None, appointment_time=None, doctor_id=None, status=None),
        )

        assert updated.notes is None
        assert updated.appointment_time == "10:00"
        assert updated.doctor_id == appointment.doctor_id
        assert updated.status == AppointmentStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_status_in_payload_follows_lifecycle(
        self, service, new_booking, test_user
    ) -> None:
        appointment = await service.create_appointment(new_booking(), test_user["id"])
        updated = await service.update_appointment(
            appointment.id, AppointmentUpdate(status=AppointmentStatus.NO_SHOW)
        )
        assert updated.status == AppointmentStatus.NO_SHOW


class TestListings:
    @pytest.mark.asyncio
    async def test_sorted_by_date_then_time(
        self, service, new_booking, make_patient, future_date, test_user
    ) -> None:
        slots = [
            (future_date + timedelta(days=1), "09:00"),
            (future_date, "14:00"),
            (future_date, "09:30"),
        ]
        for day, time in slots:
            other = await make_patient()
            await service.create_appointment(
                new_booking(patient_id=other["id"], appointment_date=day, appointment_time=time),
                test_user["id"],
            )

        listing = await service.list_appointments(AppointmentFilters())
        assert [(a.appointment_date, a.appointment_time) for a in listing.items] == sorted(slots)

    @pytest.mark.asyncio
    async def test_pagination_metadata(
        self, service, new_booking, make_patient, test_user
    ) -> None:
        for hour in range(9, 14):
            other = await make_patient()
            await service.create_appointment(
                new_booking(patient_id=other["id"], appointment_time=f"{hour:02d}:00"),
                test_user["id"],
            )

        page = await service.list_appointments(AppointmentFilters(page=2, limit=2))
        assert page.total == 5
        assert page.total_pages == 3
        assert page.has_next_page and page.has_prev_page
        assert [a.appointment_time for a in page.items] == ["11:00", "12:00"]

    @pytest.mark.asyncio
    async def test_find_by_owner(self, service, new_booking, patient, doctor, department, test_user) -> None:
        await service.create_appointment(new_booking(), test_user["id"])

        assert (await service.find_by_patient(patient["id"])).total == 1
        assert (await service.find_by_doctor(doctor["id"])).total == 1
        assert (await service.find_by_department(department["id"], PageParams(limit=5))).total == 1

        with pytest.raises(NotFoundException):
            await service.find_by_patient(uuid4())
        with pytest.raises(NotFoundException):
            await service.find_by_doctor(uuid4())
        with pytest.raises(NotFoundException):
            await service.find_by_department(uuid4())

    @pytest.mark.asyncio
    async def test_date_range_is_inclusive(
        self, service, new_booking, make_patient, future_date, test_user
    ) -> None:
        for offset in range(3):
            other = await make_patient()
            await service.create_appointment(
                new_booking(patient_id=other["id"], appointment_date=future_date + timedelta(days=offset)),
                test_user["id"],
            )

        listing = await service.find_by_date_range(future_date, future_date + timedelta(days=1))
        assert listing.total == 2

        with pytest.raises(ValidationException):
            await service.find_by_date_range(future_date, future_date - timedelta(days=1))

    @pytest.mark.asyncio
    async def test_find_by_status_and_today(
        self, service, new_booking, make_patient, test_user
    ) -> None:
        today = await service.create_appointment(
            new_booking(appointment_date=date.today()), test_user["id"]
        )
        other = await make_patient()
        later = await service.create_appointment(new_booking(patient_id=other["id"]), test_user["id"])
        await service.cancel_appointment(later.id)

        assert [a.id for a in (await service.find_today()).items] == [today.id]
        assert [a.id for a in (await service.find_by_status(AppointmentStatus.CANCELLED)).items] == [
            later.id
        ]
        assert (await service.find_by_status("active")).total == 1


class TestRegisterAndBook:
    @pytest.fixture
    def patient_details(self) -> PatientCreate:
        return PatientCreate(
            first_name="Wanjiru",
            last_name="Kamau",
            gender="female",
            date_of_birth=date(1992, 4, 17),
            phone="+254700111222",
            email="Wanjiru.Kamau@example.com",
        )

    @pytest.fixture
    def details(self, doctor, department, future_date) -> AppointmentDetails:
        return AppointmentDetails(
            doctor_id=doctor["id"],
            department_id=department["id"],
            appointment_date=future_date,
            appointment_time="10:00",
            is_first_visit=True,
        )

    @pytest.mark.asyncio
    async def test_registers_new_patient(self, service, patient_details, details, test_user) -> None:
        result = await service.register_and_book(
            RegisterAndBookRequest(patient=patient_details, appointment=details), test_user["id"]
        )

        assert result.patient.email == "wanjiru.kamau@example.com"
        assert result.appointment.patient_id == result.patient.id
        assert result.appointment.is_first_visit

    @pytest.mark.asyncio
    async def test_reuses_patient_with_same_phone(
        self, service, patient_details, details, make_patient, test_user
    ) -> None:
        existing = await make_patient(
            phone=patient_details.phone,
            email=None,
            address="Moi Avenue, Nairobi",
            blood_group="A+",
            medical_history="asthma",
            allergies=["penicillin"],
        )

        result = await service.register_and_book(
            RegisterAndBookRequest(patient=patient_details, appointment=details), test_user["id"]
        )

        assert result.patient.id == existing["id"]
        assert result.patient.first_name == "Wanjiru"
        assert result.patient.email == "wanjiru.kamau@example.com"
        # Fields the booking did not send stay on file
        assert result.patient.allergies == ["penicillin"]
        assert result.patient.medical_history == "asthma"
        assert result.patient.address == "Moi Avenue, Nairobi"
        assert result.patient.blood_group == "A+"

    @pytest.mark.asyncio
    async def test_existing_patient_id(self, service, patient, details, test_user) -> None:
        result = await service.register_and_book(
            RegisterAndBookRequest(patient_id=patient["id"], appointment=details), test_user["id"]
        )
        assert result.patient.id == patient["id"]

    @pytest.mark.asyncio
    async def test_conflict_keeps_registered_patient(
        self, service, db_session, new_booking, patient_details, details, test_user
    ) -> None:
        await service.create_appointment(new_booking(), test_user["id"])

        with pytest.raises(ConflictException):
            await service.register_and_book(
                RegisterAndBookRequest(patient=patient_details, appointment=details), test_user["id"]
            )

        result = await db_session.execute(
            select(patients).where(patients.c.phone == patient_details.phone)
        )
        assert result.first() is not None


class TestDeleteAppointment:
    @pytest.mark.asyncio
    async def test_delete_frees_slot(self, service, new_booking, doctor, future_date, test_user) -> None:
        appointment = await service.create_appointment(new_booking(), test_user["id"])
        await service.delete_appointment(appointment.id)

        with pytest.raises(NotFoundException):
            await service.get_appointment(appointment.id)
        assert await service.is_slot_available(doctor["id"], future_date, "10:00")

    @pytest.mark.asyncio
    async def test_delete_unknown(self, service) -> None:
        with pytest.raises(NotFoundException):
            await service.delete_appointment(uuid4())
