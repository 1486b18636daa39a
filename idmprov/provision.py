# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2016 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

"""Provision a posix user, and its primary group, into the directory.

The workflow is a single sequential pipeline:

    START -> CONTAINERS_ENSURED -> GROUP_RESOLVED -> USER_VALIDATED
          -> USER_CREATED -> MEMBERSHIP_LINKED -> DONE

Every failure raises and stops the run where it is. There is no rollback:
the recovery path is always to run the whole workflow again from START.
Container creation, group resolution and membership linking are idempotent;
an existing user is a hard DuplicateEntry failure.
"""

import fcntl
import os
from collections import namedtuple

from idmprov._constants import ProvisionState, PEOPLE_OU, GROUPS_OU
from idmprov._mapped_object import DSLogging
from idmprov.config import ProvisionConfig
from idmprov.exceptions import DuplicateEntry, NoSuchEntry, InvalidArgumentError
from idmprov.idm.allocator import IdAllocator
from idmprov.idm.organizationalunit import OrganizationalUnits
from idmprov.idm.posixgroup import PosixGroups
from idmprov.idm.user import UserAccounts, validate_username, user_properties
from idmprov.passwd import password_hash

ProvisionResult = namedtuple('ProvisionResult', [
    'username',
    'user_dn',
    'group_dn',
    'uid_number',
    'gid_number',
    'home_directory',
    'login_shell',
    'group_created',
])


class ProvisionLock(DSLogging):
    """An exclusive lock file held for a whole provisioning run.

    Every process that provisions into the same directory must use the same
    lock path; allocations are then serialized and cannot observe the same
    maximum id. With path None the lock does nothing.

    :param path: The lock file
    :type path: str
    """

    def __init__(self, path=None, verbose=False):
        super(ProvisionLock, self).__init__(verbose)
        self.path = path
        self._fd = None

    def __enter__(self):
        if self.path is None:
            return self
        try:
            self._fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o600)
        except OSError as e:
            raise InvalidArgumentError('Cannot open lock file %s: %s' % (self.path, e.strerror))
        self._log.debug('Waiting for %s' % self.path)
        fcntl.flock(self._fd, fcntl.LOCK_EX)
        self._log.debug('Locked %s' % self.path)
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if self._fd is not None:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
            os.close(self._fd)
            self._fd = None
            self._log.debug('Released %s' % self.path)


class PrivateGroupPolicy(DSLogging):
    """Every user gets a group of its own, named after the user.

    An existing group of that name is adopted with its gidNumber; otherwise a
    gidNumber is allocated and the group created.
    """

    def group_name(self, username):
        return username

    def resolve(self, groups, allocator, username, gid_min):
        """Find or create the primary group of username

        :returns: (group dn, gidNumber, created)
        """
        name = self.group_name(username)
        if groups.exists(name):
            entry = groups.get(name)
            gid = groups.get_gid(entry)
            self._log.info('Group %s already exists (gidNumber=%d)' % (name, gid))
            return (entry.dn, gid, False)
        gid = allocator.next_id(groups.basedn, 'gidNumber', gid_min)
        entry = groups.create({'cn': name, 'gidNumber': gid})
        self._log.info('Created group %s (gidNumber=%d)' % (name, gid))
        return (entry.dn, gid, True)


class SharedGroupPolicy(PrivateGroupPolicy):
    """Every user shares one pre-existing primary group.

    :param name: cn of the shared group
    :type name: str
    """

    def __init__(self, name, verbose=False):
        super(SharedGroupPolicy, self).__init__(verbose)
        self.name = name

    def resolve(self, groups, allocator, username, gid_min):
        if not groups.exists(self.name):
            raise NoSuchEntry('Shared group %s does not exist' % self.name, dn=groups.basedn, attribute='cn')
        entry = groups.get(self.name)
        return (entry.dn, groups.get_gid(entry), False)


class ProvisioningWorkflow(DSLogging):
    """Orchestrates the provisioning of one user.

    :param client: A bound client
    :type client: idmprov.DirectoryClient
    :param config: The settings of the run
    :type config: idmprov.config.ProvisionConfig
    :param group_policy: How the primary group is chosen, PrivateGroupPolicy by default
    :type group_policy: PrivateGroupPolicy
    :param lock: Held around provision(), a ProvisionLock on config.lock_file by default
    :type lock: ProvisionLock
    """

    def __init__(self, client, config=None, group_policy=None, lock=None):
        self._client = client
        self._config = config or ProvisionConfig()
        super(ProvisioningWorkflow, self).__init__(client.verbose)
        basedn = self._config.basedn
        self._ous = OrganizationalUnits(client, basedn)
        self._people = UserAccounts(client, basedn)
        self._groups = PosixGroups(client, basedn)
        self._allocator = IdAllocator(client)
        self._group_policy = group_policy or PrivateGroupPolicy(client.verbose)
        self._lock = lock or ProvisionLock(self._config.lock_file, client.verbose)
        self.state = ProvisionState.START

    def _advance(self, state):
        self._log.debug('%s -> %s' % (self.state.name, state.name))
        self.state = state

    @property
    def people(self):
        return self._people

    @property
    def groups(self):
        return self._groups

    def ensure_containers(self):
        """Create ou=People and ou=Groups if they are absent.

        :returns: list of the DNs that were created
        """
        created = []
        for name in (PEOPLE_OU, GROUPS_OU):
            dn, was_created = self._ous.ensure(name)
            if was_created:
                created.append(dn)
        return created

    def check_duplicate(self, username):
        """Fail if any entry of People already carries uid=username

        :raises: DuplicateEntry
        """
        if self._people.exists_any(username):
            raise DuplicateEntry("User '%s' already exists" % username,
                                 dn='uid=%s,%s' % (username, self._people.basedn), attribute='uid')

    def resolve_group(self, username):
        """:returns: (group dn, gidNumber, created)"""
        return self._group_policy.resolve(self._groups, self._allocator, username, self._config.gid_min)

    def create_user(self, username, hashed_password, gid_number, display_name=None):
        """Allocate a uidNumber, build the account and add it.

        :returns: the Entry that was added
        """
        uid_number = self._allocator.next_id(self._people.basedn, 'uidNumber', self._config.uid_min)
        properties = user_properties(username, uid_number, gid_number, hashed_password,
                                     display_name=display_name,
                                     home_base=self._config.home_base,
                                     login_shell=self._config.login_shell,
                                     mail_domain=self._config.mail_domain)
        entry = self._people.create(properties)
        self._log.info('Created user %s (uidNumber=%d, gidNumber=%d)' % (username, uid_number, gid_number))
        return entry

    def link_membership(self, group_dn, username):
        """Add username to the memberUid of group_dn. Present already is fine.

        :raises: NoSuchEntry if the group is missing
        """
        return self._groups.ensure_member(group_dn, username)

    def provision(self, username, password, display_name=None):
        """Run the whole workflow for one user.

        :param username: A POSIX safe login name
        :type username: str
        :param password: The cleartext credential, only its hash is stored
        :type password: str
        :param display_name: The full name, the username when None
        :type display_name: str

        :returns: ProvisionResult
        :raises: InvalidIdentifier, DuplicateEntry, EntryAlreadyExists,
            NoSuchEntry, SchemaViolation, ConnectionFailure, PermissionDenied
        """
        self.state = ProvisionState.START
        # Everything that can be refused without the directory is refused
        # before the first write.
        validate_username(username)
        hashed = password_hash(password, self._config.password_scheme)

        with self._lock:
            self.check_duplicate(username)

            self.ensure_containers()
            self._advance(ProvisionState.CONTAINERS_ENSURED)

            group_dn, gid_number, group_created = self.resolve_group(username)
            self._advance(ProvisionState.GROUP_RESOLVED)

            # Again, someone may have added the user since the first check
            self.check_duplicate(username)
            self._advance(ProvisionState.USER_VALIDATED)

            entry = self.create_user(username, hashed, gid_number, display_name)
            self._advance(ProvisionState.USER_CREATED)

            self.link_membership(group_dn, username)
            self._advance(ProvisionState.MEMBERSHIP_LINKED)

        uid_number, _ = self._people.get_ids(entry)
        result = ProvisionResult(
            username=username,
            user_dn=entry.dn,
            group_dn=group_dn,
            uid_number=uid_number,
            gid_number=gid_number,
            home_directory=entry.getValue('homeDirectory'),
            login_shell=entry.getValue('loginShell'),
            group_created=group_created,
        )
        self._advance(ProvisionState.DONE)
        self._log.info("LDAP user '%s' added successfully." % username)
        return result
