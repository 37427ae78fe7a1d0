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
The quota record shared by all backends, and the derivation of its status.
"""
from collections import namedtuple

from clusterquota.tools import ParseFailure

QUOTA_TYPE_USER = 'User'
QUOTA_TYPE_PRIVATE_GROUP = 'PrivateGroup'
QUOTA_TYPE_GROUP = 'Group'
QUOTA_TYPE_FOLDER = 'Folder'

QUOTA_TYPE_TAGS = {
    QUOTA_TYPE_USER: 'U',
    QUOTA_TYPE_PRIVATE_GROUP: 'P',
    QUOTA_TYPE_GROUP: 'G',
    QUOTA_TYPE_FOLDER: 'F',
}

STATUS_OK = 'Ok'
STATUS_EXCEEDED = 'Exceeded'
STATUS_UNKNOWN = 'Unknown'

SUBJECT_USER = 'user'
SUBJECT_GROUP = 'group'

UNKNOWN = '?'
NOT_AVAILABLE = 'NA'
NO_GRACE = 'none'

# grace values that do not prove the soft limit was breached
INACTIVE_GRACE = (NO_GRACE, UNKNOWN)

QuotaValues = namedtuple('QuotaValues', ['used', 'soft', 'hard', 'grace'])

QuotaRecord = namedtuple('QuotaRecord', [
    'quota_type',
    'target',
    'size',
    'count',
    'size_exceeded',
    'count_exceeded',
    'status',
])

CandidateTarget = namedtuple('CandidateTarget', ['subject', 'mount', 'path', 'quota_type'])


def make_record(quota_type, target, size, count, size_exceeded=False, count_exceeded=False):
    """Create a record that has not yet been through derive_status."""
    for values in (size, count):
        missing = [field for (field, value) in values._asdict().items() if value is None or value == '']
        if missing:
            raise ParseFailure("Quota record for %s is missing %s" % (target, ", ".join(missing)))

    return QuotaRecord(
        quota_type=quota_type,
        target=target,
        size=size,
        count=count,
        size_exceeded=size_exceeded,
        count_exceeded=count_exceeded,
        status=None,
    )


def derive_status(record):
    """
    Return a copy of the record with its status filled in.

    A missing soft limit makes the status unknown. An exceeded marker from the backend, or a
    running grace period on either size or count, makes it exceeded, even when the soft limit
    is unknown.
    """
    status = STATUS_OK

    if record.size.soft == UNKNOWN:
        status = STATUS_UNKNOWN

    if record.size_exceeded or record.count_exceeded:
        status = STATUS_EXCEEDED
    elif record.size.grace not in INACTIVE_GRACE or record.count.grace not in INACTIVE_GRACE:
        status = STATUS_EXCEEDED

    return record._replace(status=status)
