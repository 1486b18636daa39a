# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2015 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

from enum import Enum, IntEnum

DEFAULT_BASE_DN = 'dc=lab,dc=local'
DEFAULT_ADMIN_RDN = 'cn=admin'
# Local socket; avoids TLS on localhost
DEFAULT_ENDPOINT = 'ldapi:///'

DEFAULT_UID_MIN = 10000
DEFAULT_GID_MIN = 10000

# Seconds before a directory operation surfaces as a connection failure
DEFAULT_TIMEOUT = 10

# Allocation scans use paged results to stay under server size limits
DEFAULT_PAGE_SIZE = 500

DEFAULT_LOGIN_SHELL = '/bin/bash'
DEFAULT_HOME_BASE = '/home'
DEFAULT_PASSWORD_SCHEME = 'SSHA'

PEOPLE_OU = 'People'
GROUPS_OU = 'Groups'

DSRC_HOME = '~/.idmprovrc'
DSRC_CONTAINER = '/etc/idmprov/idmprovrc'

# Attributes that should be masked from logging output
SENSITIVE_ATTRS = ['userpassword', 'bindpw', 'password']

# POSIX safe login name
USERNAME_PATTERN = r'^[a-z_][a-z0-9_-]*\Z'


class ExitStatus(IntEnum):
    SUCCESS = 0
    ERROR = 1
    INVALID_ARGUMENT = 2
    ENTRY_ALREADY_EXISTS = 3
    DUPLICATE_ENTRY = 4
    NO_SUCH_ENTRY = 5
    SCHEMA_VIOLATION = 6
    CONNECTION_FAILURE = 7
    PERMISSION_DENIED = 8


class ProvisionState(Enum):
    START = 'start'
    CONTAINERS_ENSURED = 'containers_ensured'
    GROUP_RESOLVED = 'group_resolved'
    USER_VALIDATED = 'user_validated'
    USER_CREATED = 'user_created'
    MEMBERSHIP_LINKED = 'membership_linked'
    DONE = 'done'
