PERM_ADD_EDIT_MEMBERS = "addEditMembers"
PERM_COLLECT_PAYMENTS = "collectPayments"
PERM_ADD_DUES = "addDues"
PERM_ADD_CONTRIBUTION = "addContribution"
PERM_ADD_MISC = "addMisc"
PERM_ADD_BUDGET = "addBudget"
PERM_MAKE_WITHDRAWAL = "makeWithdrawal"
PERM_ADD_EVENTS = "addEvents"
PERM_ADD_MINUTES_REPORTS = "addMinutesReports"

PERMISSION_KEYS = (
    PERM_ADD_EDIT_MEMBERS,
    PERM_COLLECT_PAYMENTS,
    PERM_ADD_DUES,
    PERM_ADD_CONTRIBUTION,
    PERM_ADD_MISC,
    PERM_ADD_BUDGET,
    PERM_MAKE_WITHDRAWAL,
    PERM_ADD_EVENTS,
    PERM_ADD_MINUTES_REPORTS,
)

ALL_PERMISSIONS = [
    {"code": PERM_ADD_EDIT_MEMBERS, "description": "Add and edit members"},
    {"code": PERM_COLLECT_PAYMENTS, "description": "Collect monthly dues payments"},
    {"code": PERM_ADD_DUES, "description": "Allocate dues and add dues income"},
    {"code": PERM_ADD_CONTRIBUTION, "description": "Add contributions"},
    {"code": PERM_ADD_MISC, "description": "Add miscellaneous income"},
    {"code": PERM_ADD_BUDGET, "description": "Set the yearly budget"},
    {"code": PERM_MAKE_WITHDRAWAL, "description": "Withdraw funds from the coffers"},
    {"code": PERM_ADD_EVENTS, "description": "Add programs and events"},
    {"code": PERM_ADD_MINUTES_REPORTS, "description": "Publish minutes and announcements"},
]

# Settings key holding the role permission grid
ROLE_PERMISSIONS_KEY = "rolePermissions"

# Reserved role names
ADMIN_ROLE = "admin"
ALL_ROLES = "all"
DEFAULT_ROLE = "member"

UNION_ROLES = [
    "Union President",
    "Union Vice President",
    "Union General Secretary",
    "Union Assistant Secretary",
    "Union Financial Secretary",
    "Union Treasurer",
    "Union Organizing Secretary",
    "Union Assistant Organizing Secretary",
    "Union Mother",
    "Union Prayer Secretary",
    "Union Bible Facilitator",
]

CONFIGURABLE_ROLES = UNION_ROLES + [ALL_ROLES]
