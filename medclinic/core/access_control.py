"""Role based access control shared by the API route guards and the dashboard client.

The role -> permission and role -> page tables are defined here once. The API
checks them through ``medclinic.dependencies.require_permissions`` and the
dashboard fetches the same tables from ``/api/v1/access``.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from types import MappingProxyType


class Role(str, Enum):
    """User role enumeration."""

    ADMIN = "admin"
    MANAGER = "manager"
    DOCTOR = "doctor"
    NURSE = "nurse"
    RECEPTIONIST = "receptionist"
    STAFF = "staff"
    ACCOUNTANT = "accountant"
    LAB_TECHNICIAN = "lab_technician"


class Permission(str, Enum):
    """Fine-grained capability tokens."""

    # Patients
    VIEW_PATIENTS = "view_patients"
    ADD_PATIENT = "add_patient"
    EDIT_PATIENT = "edit_patient"
    DELETE_PATIENT = "delete_patient"

    # Appointments
    VIEW_APPOINTMENTS = "view_appointments"
    ADD_APPOINTMENT = "add_appointment"
    EDIT_APPOINTMENT = "edit_appointment"
    DELETE_APPOINTMENT = "delete_appointment"
    SCHEDULE_APPOINTMENT = "schedule_appointment"
    RESCHEDULE_APPOINTMENT = "reschedule_appointment"
    CANCEL_APPOINTMENT = "cancel_appointment"

    # User management
    VIEW_USERS = "view_users"
    ADD_USER = "add_user"
    EDIT_USER = "edit_user"
    DELETE_USER = "delete_user"
    APPROVE_USER = "approve_user"
    REJECT_USER = "reject_user"

    # Finance
    VIEW_BILLING = "view_billing"
    CREATE_INVOICE = "create_invoice"
    PROCESS_PAYMENT = "process_payment"
    VIEW_FINANCIAL_REPORTS = "view_financial_reports"

    # Medical records
    VIEW_MEDICAL_RECORDS = "view_medical_records"
    ADD_MEDICAL_RECORD = "add_medical_record"
    EDIT_MEDICAL_RECORD = "edit_medical_record"

    # Service requests
    VIEW_SERVICE_REQUESTS = "view_service_requests"
    ADD_SERVICE_REQUEST = "add_service_request"
    APPROVE_SERVICE_REQUEST = "approve_service_request"
    REJECT_SERVICE_REQUEST = "reject_service_request"
    COMPLETE_SERVICE_REQUEST = "complete_service_request"

    # Doctors
    VIEW_DOCTORS = "view_doctors"
    ADD_DOCTOR = "add_doctor"
    EDIT_DOCTOR = "edit_doctor"
    DELETE_DOCTOR = "delete_doctor"
    TOGGLE_DOCTOR_STATUS = "toggle_doctor_status"
    REASSIGN_DOCTOR = "reassign_doctor"

    # Staff
    VIEW_STAFF = "view_staff"
    MANAGE_STAFF = "manage_staff"

    # Departments
    VIEW_DEPARTMENTS = "view_departments"
    ADD_DEPARTMENT = "add_department"
    EDIT_DEPARTMENT = "edit_department"
    DELETE_DEPARTMENT = "delete_department"
    TOGGLE_DEPARTMENT_STATUS = "toggle_department_status"

    # Medical services
    VIEW_MEDICAL_SERVICES = "view_medical_services"
    ADD_MEDICAL_SERVICE = "add_medical_service"
    EDIT_MEDICAL_SERVICE = "edit_medical_service"
    APPROVE_MEDICAL_SERVICE = "approve_medical_service"
    REQUEST_MEDICAL_SERVICE = "request_medical_service"

    # Leave management
    VIEW_LEAVE_TYPES = "view_leave_types"
    ADD_LEAVE_TYPE = "add_leave_type"
    EDIT_LEAVE_TYPE = "edit_leave_type"
    DELETE_LEAVE_TYPE = "delete_leave_type"
    VIEW_LEAVE_BALANCES = "view_leave_balances"
    UPDATE_LEAVE_ALLOCATION = "update_leave_allocation"
    VIEW_LEAVE_REQUESTS = "view_leave_requests"
    APPLY_FOR_LEAVE = "apply_for_leave"
    APPROVE_LEAVE_REQUEST = "approve_leave_request"
    REJECT_LEAVE_REQUEST = "reject_leave_request"
    CANCEL_LEAVE_REQUEST = "cancel_leave_request"
    VIEW_ALL_LEAVE_REQUESTS = "view_all_leave_requests"

    # System administration
    MANAGE_SYSTEM_SETTINGS = "manage_system_settings"


P = Permission

# Every employee applies for and tracks their own leave.
_SELF_SERVICE_LEAVE = (
    P.VIEW_LEAVE_BALANCES,
    P.APPLY_FOR_LEAVE,
    P.CANCEL_LEAVE_REQUEST,
    P.VIEW_LEAVE_REQUESTS,
)

_FRONT_DESK_APPOINTMENTS = (
    P.VIEW_APPOINTMENTS,
    P.ADD_APPOINTMENT,
    P.EDIT_APPOINTMENT,
    P.SCHEDULE_APPOINTMENT,
    P.RESCHEDULE_APPOINTMENT,
    P.CANCEL_APPOINTMENT,
)


def _default_role_permissions() -> dict[Role, Iterable[Permission]]:
    return {
        Role.ADMIN: list(Permission),
        Role.MANAGER: (
            P.VIEW_PATIENTS,
            P.ADD_PATIENT,
            P.EDIT_PATIENT,
            *_FRONT_DESK_APPOINTMENTS,
            P.VIEW_USERS,
            P.VIEW_DOCTORS,
            P.EDIT_DOCTOR,
            P.TOGGLE_DOCTOR_STATUS,
            P.REASSIGN_DOCTOR,
            P.VIEW_STAFF,
            P.MANAGE_STAFF,
            P.VIEW_DEPARTMENTS,
            P.VIEW_FINANCIAL_REPORTS,
            P.VIEW_SERVICE_REQUESTS,
            P.APPROVE_SERVICE_REQUEST,
            P.REJECT_SERVICE_REQUEST,
            P.VIEW_MEDICAL_SERVICES,
            P.APPROVE_MEDICAL_SERVICE,
            P.VIEW_LEAVE_TYPES,
            P.VIEW_ALL_LEAVE_REQUESTS,
            P.APPROVE_LEAVE_REQUEST,
            P.REJECT_LEAVE_REQUEST,
            *_SELF_SERVICE_LEAVE,
        ),
        Role.DOCTOR: (
            P.VIEW_PATIENTS,
            P.ADD_PATIENT,
            P.EDIT_PATIENT,
            *_FRONT_DESK_APPOINTMENTS,
            P.DELETE_APPOINTMENT,
            P.VIEW_MEDICAL_RECORDS,
            P.ADD_MEDICAL_RECORD,
            P.EDIT_MEDICAL_RECORD,
            P.VIEW_DOCTORS,
            P.VIEW_DEPARTMENTS,
            P.REQUEST_MEDICAL_SERVICE,
            *_SELF_SERVICE_LEAVE,
        ),
        Role.NURSE: (
            P.VIEW_PATIENTS,
            P.ADD_PATIENT,
            *_FRONT_DESK_APPOINTMENTS,
            P.VIEW_MEDICAL_RECORDS,
            P.ADD_MEDICAL_RECORD,
            P.VIEW_DOCTORS,
            P.VIEW_DEPARTMENTS,
            *_SELF_SERVICE_LEAVE,
        ),
        Role.RECEPTIONIST: (
            P.VIEW_PATIENTS,
            P.ADD_PATIENT,
            P.EDIT_PATIENT,
            *_FRONT_DESK_APPOINTMENTS,
            P.VIEW_DOCTORS,
            P.VIEW_DEPARTMENTS,
            *_SELF_SERVICE_LEAVE,
        ),
        Role.STAFF: (
            P.VIEW_PATIENTS,
            P.ADD_PATIENT,
            *_FRONT_DESK_APPOINTMENTS,
            P.VIEW_MEDICAL_RECORDS,
            P.VIEW_DOCTORS,
            P.VIEW_DEPARTMENTS,
            *_SELF_SERVICE_LEAVE,
        ),
        Role.ACCOUNTANT: (
            P.VIEW_PATIENTS,
            P.VIEW_BILLING,
            P.CREATE_INVOICE,
            P.PROCESS_PAYMENT,
            P.VIEW_FINANCIAL_REPORTS,
            *_SELF_SERVICE_LEAVE,
        ),
        Role.LAB_TECHNICIAN: (
            P.VIEW_PATIENTS,
            P.VIEW_MEDICAL_RECORDS,
            P.VIEW_SERVICE_REQUESTS,
            P.COMPLETE_SERVICE_REQUEST,
            P.VIEW_MEDICAL_SERVICES,
            *_SELF_SERVICE_LEAVE,
        ),
    }


def _default_page_access() -> dict[Role, Iterable[str]]:
    return {
        Role.ADMIN: (
            "/dashboard",
            "/admin",
            "/patients",
            "/appointments",
            "/users",
            "/billing",
            "/reports",
            "/settings",
            "/departments",
            "/doctors",
            "/service-requests",
            "/medical-services",
            "/leave-management",
            "/leave-management-admin",
            "/staff/add",
        ),
        Role.MANAGER: (
            "/dashboard",
            "/patients",
            "/appointments",
            "/doctors",
            "/departments",
            "/reports",
            "/service-requests",
            "/medical-services",
            "/leave-management",
            "/leave-management-admin",
        ),
        Role.DOCTOR: (
            "/dashboard",
            "/patients",
            "/appointments",
            "/medical-records",
            "/leave-management",
        ),
        Role.NURSE: (
            "/dashboard",
            "/patients",
            "/appointments",
            "/medical-records",
            "/leave-management",
        ),
        Role.RECEPTIONIST: (
            "/dashboard",
            "/patients",
            "/appointments",
            "/leave-management",
        ),
        Role.STAFF: (
            "/dashboard",
            "/patients",
            "/appointments",
            "/leave-management",
        ),
        Role.ACCOUNTANT: (
            "/dashboard",
            "/billing",
            "/reports",
            "/leave-management",
        ),
        Role.LAB_TECHNICIAN: (
            "/dashboard",
            "/patients",
            "/service-requests",
            "/leave-management",
        ),
    }


def _coerce(enum_cls: type[Enum], value: object) -> Enum | None:
    """Return the enum member for ``value`` or None when it is not one."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class AccessPolicy:
    """Immutable role -> permission and role -> page tables.

    Every check is fail-closed: an unknown role, an unknown permission or an
    unlisted path is denied rather than raising.
    """

    role_permissions: Mapping[Role, frozenset[Permission]]
    page_access: Mapping[Role, tuple[str, ...]]

    @classmethod
    def from_tables(
        cls,
        role_permissions: Mapping[Role, Iterable[Permission]],
        page_access: Mapping[Role, Iterable[str]],
    ) -> "AccessPolicy":
        """Freeze plain tables into a policy."""
        return cls(
            role_permissions=MappingProxyType(
                {
                    Role(role): frozenset(Permission(p) for p in perms)
                    for role, perms in role_permissions.items()
                }
            ),
            page_access=MappingProxyType(
                {Role(role): tuple(pages) for role, pages in page_access.items()}
            ),
        )

    def permissions_for(self, role: Role | str | None) -> frozenset[Permission]:
        """All permissions held by a role (empty for unknown roles)."""
        member = _coerce(Role, role)
        if member is None:
            return frozenset()
        return self.role_permissions.get(member, frozenset())

    def pages_for(self, role: Role | str | None) -> tuple[str, ...]:
        """Page prefixes a role may open (empty for unknown roles)."""
        member = _coerce(Role, role)
        if member is None:
            return ()
        return self.page_access.get(member, ())

    def has_permission(self, role: Role | str | None, permission: Permission | str) -> bool:
        """Check whether a role holds a permission."""
        member = _coerce(Permission, permission)
        if member is None:
            return False
        return member in self.permissions_for(role)

    def has_all_permissions(
        self, role: Role | str | None, permissions: Iterable[Permission | str]
    ) -> bool:
        """Check whether a role holds every permission in ``permissions``."""
        return all(self.has_permission(role, permission) for permission in permissions)

    def has_any_permission(
        self, role: Role | str | None, permissions: Iterable[Permission | str]
    ) -> bool:
        """Check whether a role holds at least one permission in ``permissions``."""
        return any(self.has_permission(role, permission) for permission in permissions)

    def has_page_access(self, role: Role | str | None, path: str) -> bool:
        """Check whether ``path`` starts with one of the role's page prefixes."""
        return any(path.startswith(page) for page in self.pages_for(role))

    def as_dict(self) -> dict[str, dict[str, list[str]]]:
        """Serializable form of the tables, keyed by role value."""
        return {
            role.value: {
                "permissions": sorted(p.value for p in self.permissions_for(role)),
                "pages": list(self.pages_for(role)),
            }
            for role in Role
        }


def build_access_policy() -> AccessPolicy:
    """Build the clinic's access policy from the default tables."""
    return AccessPolicy.from_tables(_default_role_permissions(), _default_page_access())


@lru_cache
def get_access_policy() -> AccessPolicy:
    """Get the process-wide access policy, built on first use."""
    return build_access_policy()
