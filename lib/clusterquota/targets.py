#
# Copyright 2026-2026 Ghent University
#
# This file is part of cluster-quota,
# originally created by the HPC team of Ghent University (http://ugent.be/hpc/en),
# with support of Ghent University (http://ugent.be/hpc),
# the Flemish Supercomputer Centre (VSC) (https://www.vscentrum.be),
# the Flemish Research Foundation (FWO) (http://www.fwo.be/en)
# and the Department of Economy, Science and Innovation (EWI) (http://www.ewi-vlaanderen.be/en).
#
# cluster-quota is free software: you can redistribute it and/or modify
# it under the terms of the GNU Library General Public License as
# published by the Free Software Foundation, either version 2 of
# the License, or (at your option) any later version.
#
# cluster-quota is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Library General Public License for more details.
#
# You should have received a copy of the GNU Library General Public License
# along with cluster-quota. If not, see <http://www.gnu.org/licenses/>.
#
"""
Locating the directories on a mounted filesystem that carry quota for a user or a group.
"""
import logging
import os

from clusterquota.entities import (
    CandidateTarget, QUOTA_TYPE_GROUP, QUOTA_TYPE_PRIVATE_GROUP, SUBJECT_GROUP, SUBJECT_USER,
)
from clusterquota.tools import DEFAULT_CACHE_NAME, FatalConfiguration, all_groups, is_privileged, user_groups

HOME_ROOT = 'home'
GROUPS_ROOT = 'groups'
DEFAULT_ADMIN_GROUPS = ['admin']


class ReportContext(object):
    """
    Everything a single report run needs to know besides the subjects and the mounts.

    @param users: names of all user accounts, a group with such a name is a private group
    @param admin_groups: groups that are never reported on
    @param cache_name: name of the per-directory cache file, without the leading dot
    @param normalize_unit: show all sizes in one unit
    @param plain_text: do not decorate exceeded quota
    """

    def __init__(self, users=None, admin_groups=None, cache_name=DEFAULT_CACHE_NAME,
                 normalize_unit=False, plain_text=False):
        self.users = set(users or [])
        if admin_groups is None:
            admin_groups = DEFAULT_ADMIN_GROUPS
        self.admin_groups = set(admin_groups)
        self.cache_name = cache_name
        self.normalize_unit = normalize_unit
        self.plain_text = plain_text

    def is_private_group(self, name):
        return name in self.users


def resolve_targets(subject, subject_kind, mount, context):
    """
    Find the quota targets of the subject on the given mount.

    @type subject: user or group name
    @type subject_kind: SUBJECT_USER or SUBJECT_GROUP
    @type mount: mountpoint path
    @type context: ReportContext instance

    @returns: list of CandidateTarget, empty when the subject has no quota on this mount
    """
    if subject in context.admin_groups:
        logging.debug("Skipping administrative group %s", subject)
        return []

    if subject_kind == SUBJECT_USER or context.is_private_group(subject):
        return _resolve_home(subject, mount)

    return _resolve_group(subject, mount)


def _resolve_home(subject, mount):
    if os.path.basename(mount.rstrip('/')) == HOME_ROOT:
        path = os.path.join(mount, subject)
    else:
        path = os.path.join(mount, HOME_ROOT, subject)

    if os.path.isdir(path):
        return [CandidateTarget(subject=subject, mount=mount, path=path, quota_type=QUOTA_TYPE_PRIVATE_GROUP)]

    return []


def _resolve_group(subject, mount):
    group_marker = "/%s/%s" % (GROUPS_ROOT, subject)
    mount_path = mount.rstrip('/')

    if (group_marker + '/') in mount_path:
        return [CandidateTarget(subject=subject, mount=mount, path=mount, quota_type=QUOTA_TYPE_GROUP)]

    if mount_path.endswith(group_marker):
        group_dir = mount
    else:
        group_dir = os.path.join(mount, GROUPS_ROOT, subject)

    if not os.path.isdir(group_dir):
        return []

    try:
        entries = sorted(os.listdir(group_dir))
    except OSError as err:
        logging.warning("Cannot list group directory %s: %s", group_dir, err)
        return []

    return [
        CandidateTarget(subject=subject, mount=mount, path=os.path.join(group_dir, entry),
                        quota_type=QUOTA_TYPE_GROUP)
        for entry in entries
        if not entry.startswith('.') and os.path.isdir(os.path.join(group_dir, entry))
    ]


def determine_subjects(user_name, context, report_all=False, groups=None):
    """
    The users and groups to report on, in report order: the user first, then their groups.

    @type report_all: report every group instead, requires privileges
    @type groups: only report these groups, requires privileges for groups the user is not in

    @returns: list of (name, SUBJECT_USER or SUBJECT_GROUP) tuples
    @raises FatalConfiguration: when the user may not see the requested groups
    """
    if report_all:
        if not is_privileged(user_name, context.admin_groups):
            raise FatalConfiguration("Only root or members of %s may report on all groups" %
                                     ", ".join(sorted(context.admin_groups)))
        return [(group, SUBJECT_GROUP) for group in all_groups()]

    member_of = user_groups(user_name)
    if groups:
        foreign = [group for group in groups if group not in member_of]
        if foreign and not is_privileged(user_name, context.admin_groups):
            raise FatalConfiguration("%s is not a member of %s" % (user_name, ", ".join(foreign)))
        return [(group, SUBJECT_GROUP) for group in groups]

    # the private group of the user covers the same home directory
    return [(user_name, SUBJECT_USER)] + [(group, SUBJECT_GROUP) for group in member_of if group != user_name]
