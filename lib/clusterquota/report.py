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
Gathering the quota records for a set of subjects and mounts, and rendering them as a table.
"""
import logging

from clusterquota.backends import get_backend
from clusterquota.entities import QUOTA_TYPE_TAGS, STATUS_EXCEEDED, derive_status
from clusterquota.targets import resolve_targets
from clusterquota.tools import ParseFailure
from clusterquota.units import SENTINEL_PADDING, normalize_to_unit, reformat

TARGET_LABEL = 'Path/Filesystem'
VALUE_WIDTH = 10
STATUS_WIDTH = 10
EXCEEDED_LABEL = 'EXCEEDED!'
EXCEEDED_DECORATION = "\033[1;31m%s\033[0m"

SIZE_LABEL = 'Total size of files and folders'
COUNT_LABEL = 'Total number of files and folders'
VALUE_LABELS = ['used', 'quota', 'limit', 'grace']


def gather_quota(subjects, mounts, context):
    """
    Query the quota of every subject on every mount.

    The records are ordered by subject, then by mount, then in the order the targets were found.
    A target whose quota cannot be determined is logged and left out.

    @type subjects: list of (name, SUBJECT_USER or SUBJECT_GROUP) tuples
    @type mounts: list of Mount namedtuples
    @type context: ReportContext instance

    @returns: list of QuotaRecord namedtuples with their status derived
    """
    backends = {}
    records = []

    for (subject, subject_kind) in subjects:
        for mount in mounts:
            if mount.backend not in backends:
                backends[mount.backend] = get_backend(mount.backend, context)
            backend = backends[mount.backend]

            for candidate in resolve_targets(subject, subject_kind, mount.mountpoint, context):
                logging.debug("Querying %s quota for %s", mount.backend, candidate)
                try:
                    record = backend.query(candidate)
                except ParseFailure as err:
                    logging.error("Cannot determine quota of %s for %s: %s", candidate.path, subject, err)
                    continue

                if record is not None:
                    records.append(derive_status(record))

    return records


class QuotaReport(object):
    """
    Fixed-width table of quota records.

    The width of the target column is determined once, from the records given at creation.
    """

    def __init__(self, context, records):
        self.context = context
        self.records = records
        self.target_width = max([len(TARGET_LABEL)] + [len(r.target) for r in records])

    def _size(self, token):
        if not self.context.normalize_unit:
            return reformat(token)

        normalized = normalize_to_unit(token)
        if normalized == token:
            return token + SENTINEL_PADDING
        return normalized

    def _status(self, status):
        if status != STATUS_EXCEEDED:
            return status.ljust(STATUS_WIDTH)

        label = EXCEEDED_LABEL.ljust(STATUS_WIDTH)
        if self.context.plain_text:
            return label
        return EXCEEDED_DECORATION % label

    def header(self):
        group_width = 4 * (VALUE_WIDTH + 1) - 1
        first = "%s | %s | %s |" % (
            " " * (self.target_width + 4),
            SIZE_LABEL.rjust(group_width),
            COUNT_LABEL.rjust(group_width),
        )
        labels = " ".join(label.rjust(VALUE_WIDTH) for label in VALUE_LABELS)
        second = "(T) %s | %s | %s | %s" % (
            TARGET_LABEL.ljust(self.target_width),
            labels,
            labels,
            'Status'.ljust(STATUS_WIDTH),
        )
        return [first, second]

    def format_record(self, record):
        size = [self._size(record.size.used), self._size(record.size.soft), self._size(record.size.hard),
                reformat(record.size.grace)]
        count = [reformat(value) for value in record.count]

        return "(%s) %s | %s | %s | %s" % (
            QUOTA_TYPE_TAGS[record.quota_type],
            record.target.ljust(self.target_width),
            " ".join(value.rjust(VALUE_WIDTH) for value in size),
            " ".join(value.rjust(VALUE_WIDTH) for value in count),
            self._status(record.status),
        )

    def lines(self):
        return self.header() + [self.format_record(record) for record in self.records]
