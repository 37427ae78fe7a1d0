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
The quota backends: for a candidate target, each runs its own quota tool and turns the
output into a QuotaRecord.

- quota: the generic quota(1) tool, for local and NFS filesystems
- lfs: Lustre project and group quota through lfs quota
- panfs: the dedicated pan_quota tool, reporting CSV
- df: filesystems that only expose their capacity, where the size of the filesystem is the limit
"""
import csv
import logging
import os
import re

from clusterquota.entities import (
    QuotaValues, make_record, QUOTA_TYPE_FOLDER, QUOTA_TYPE_PRIVATE_GROUP,
    NOT_AVAILABLE, NO_GRACE, UNKNOWN,
)
from clusterquota.tools import (
    CACHE_PROJECT_ID, CACHE_SIZE_SOFT_LIMIT, FatalConfiguration, ParseFailure,
    group_id, read_cache_file, run_command,
)
from clusterquota.units import parse_unit_value, to_base

EXCEEDED_MARKER = '*'

# Some quota servers report an expired grace period as a huge number of days, e.g., 49697days
GRACE_EXPIRED_BUG_REGEX = re.compile(r"^\d{5,}\s*days?$")
GRACE_EXPIRED = '0days'

LFS_NO_GRACE = '-'
LFS_BANNER_LINES = 2
DF_UNKNOWN = '-'


def fix_grace(grace):
    """Rewrite the bogus day counts some servers report for an expired grace period."""
    if GRACE_EXPIRED_BUG_REGEX.match(grace):
        logging.debug("Rewriting bogus grace %s to %s", grace, GRACE_EXPIRED)
        return GRACE_EXPIRED
    return grace


def split_exceeded(used):
    """Return the used value without the exceeded marker, and whether the marker was present."""
    if used.endswith(EXCEEDED_MARKER):
        return (used.rstrip(EXCEEDED_MARKER), True)
    return (used, False)


def last_line(output):
    lines = [line for line in output.splitlines() if line.strip()]
    if not lines:
        raise ParseFailure("No output to parse")
    return lines[-1]


class QuotaBackend(object):
    """
    Base class for the quota backends.

    Subclasses set TOOL and implement command() and parse(). query() returns None when the
    candidate has nothing to report, and raises ParseFailure when the quota could not be
    determined.
    """

    TOOL = None
    ACCEPTED_EXIT_CODES = (0,)

    def __init__(self, context):
        self.context = context

    def command(self, candidate):
        raise NotImplementedError

    def parse(self, output, candidate):
        raise NotImplementedError

    def query(self, candidate):
        output = run_command(self.command(candidate), self.ACCEPTED_EXIT_CODES)
        return self.parse(output, candidate)


class GenericBackend(QuotaBackend):
    """
    quota(1) reports one line per filesystem:

        filesystem used[*] soft hard [grace] used[*] soft hard [grace]

    where a grace is only present when the used value carries the exceeded marker.
    """

    TOOL = 'quota'
    ACCEPTED_EXIT_CODES = (0, 1)  # 1 means some quota is exceeded

    def command(self, candidate):
        return [self.TOOL, '-s', '-w', '-g', candidate.subject, '-f', candidate.mount]

    def _values(self, values, target):
        """Take used, soft, hard and (optionally) grace from the front of values."""
        if len(values) < 3:
            raise ParseFailure("Too few quota fields for %s" % (target,))

        (used, exceeded) = split_exceeded(values[0])
        try:
            parse_unit_value(used)
        except ValueError:
            raise ParseFailure("Non-numeric usage %s for %s" % (used, target))

        if exceeded:
            if len(values) < 4:
                raise ParseFailure("Missing grace for exceeded quota of %s" % (target,))
            grace = fix_grace(values[3])
            remainder = values[4:]
        else:
            grace = NO_GRACE
            remainder = values[3:]

        return (QuotaValues(used=used, soft=values[1], hard=values[2], grace=grace), exceeded, remainder)

    def parse(self, output, candidate):
        fields = last_line(output).split()
        values = fields[1:]  # the filesystem name

        (size, size_exceeded, values) = self._values(values, candidate.path)
        (count, count_exceeded, values) = self._values(values, candidate.path)
        if values:
            raise ParseFailure("Unexpected trailing quota fields for %s: %s" % (candidate.path, values))

        return make_record(candidate.quota_type, candidate.path, size, count,
                           size_exceeded=size_exceeded, count_exceeded=count_exceeded)


class LustreBackend(QuotaBackend):
    """
    lfs quota, by project id for project directories and by group id for home directories.

    The project id of a project directory is taken from its cache file.
    """

    TOOL = 'lfs'

    def identifier(self, candidate):
        if candidate.quota_type == QUOTA_TYPE_PRIVATE_GROUP:
            return ('-g', group_id(candidate.subject))

        entries = read_cache_file(candidate.path, self.context.cache_name)
        project_id = entries.get(CACHE_PROJECT_ID)
        if not project_id:
            raise ParseFailure("No %s in the cache file of %s" % (CACHE_PROJECT_ID, candidate.path))
        if not project_id.isdigit():
            raise ParseFailure("Invalid %s %s for %s" % (CACHE_PROJECT_ID, project_id, candidate.path))

        return ('-p', int(project_id))

    def command(self, candidate):
        (kind, identifier) = self.identifier(candidate)
        return [self.TOOL, 'quota', '-h', kind, str(identifier), candidate.mount]

    def parse(self, output, candidate):
        lines = output.splitlines()[LFS_BANNER_LINES:]
        # long paths make lfs wrap the line after the filesystem name
        fields = " ".join(lines).split()
        if len(fields) != 9:
            raise ParseFailure("Expected 9 fields from lfs quota for %s, got %d" % (candidate.path, len(fields)))

        logging.debug("lfs quota for %s reported on %s", candidate.path, fields[0])
        (used, size_exceeded) = split_exceeded(fields[1])
        (files, count_exceeded) = split_exceeded(fields[5])

        size = QuotaValues(used=used, soft=fields[2], hard=fields[3], grace=self._grace(fields[4]))
        count = QuotaValues(used=files, soft=fields[6], hard=fields[7], grace=self._grace(fields[8]))

        return make_record(QUOTA_TYPE_FOLDER, candidate.path, size, count,
                           size_exceeded=size_exceeded, count_exceeded=count_exceeded)

    @staticmethod
    def _grace(grace):
        if grace == LFS_NO_GRACE:
            return NO_GRACE
        return fix_grace(grace)


class PanfsBackend(QuotaBackend):
    """
    pan_quota reports CSV, the last line holding

        used size, hard size, used files, hard files, owner id, volume id

    There are no soft limits or grace periods, so only going over the hard limit shows.
    """

    TOOL = 'pan_quota'
    CSV_FIELDS = 6

    def command(self, candidate):
        return [self.TOOL, '-G', '-C', candidate.path]

    def parse(self, output, candidate):
        fields = [field.strip() for field in next(csv.reader([last_line(output)]))]
        if len(fields) != self.CSV_FIELDS:
            raise ParseFailure("Expected %d CSV fields from %s for %s, got %d" %
                               (self.CSV_FIELDS, self.TOOL, candidate.path, len(fields)))

        (used, hard, files, files_hard, owner, volume) = fields
        logging.debug("%s quota for %s: owner %s on volume %s", self.TOOL, candidate.path, owner, volume)

        size = QuotaValues(used=used, soft=NOT_AVAILABLE, hard=hard, grace=NO_GRACE)
        count = QuotaValues(used=files, soft=NOT_AVAILABLE, hard=files_hard, grace=NO_GRACE)

        return make_record(candidate.quota_type, candidate.path, size, count,
                           size_exceeded=over_hard_limit(used, hard, candidate.path),
                           count_exceeded=over_hard_limit(files, files_hard, candidate.path))


def over_hard_limit(used, hard, target):
    """True if used goes beyond a hard limit that is set (non-zero)."""
    try:
        (used, hard) = (to_base(used), to_base(hard))
    except ValueError:
        raise ParseFailure("Non-numeric usage %s or limit %s for %s" % (used, hard, target))

    return 0 < hard < used


class CapacityBackend(QuotaBackend):
    """
    Filesystems without a quota tool, where the capacity (df) of the export is the limit.

    The soft size limit can be provided through the cache file of the target.
    """

    TOOL = 'df'

    def command(self, candidate, inodes=False):
        if inodes:
            return [self.TOOL, '-P', '-i', candidate.path]
        return [self.TOOL, '-P', '-B1', candidate.path]

    def query(self, candidate):
        if not os.path.exists(candidate.path):
            logging.debug("Not reporting on missing %s", candidate.path)
            return None

        space = run_command(self.command(candidate), self.ACCEPTED_EXIT_CODES)
        inodes = run_command(self.command(candidate, inodes=True), self.ACCEPTED_EXIT_CODES)
        return self.parse((space, inodes), candidate)

    def soft_limit(self, candidate):
        try:
            entries = read_cache_file(candidate.path, self.context.cache_name)
        except ParseFailure as err:
            logging.debug("No soft limit for %s: %s", candidate.path, err)
            return UNKNOWN

        return entries.get(CACHE_SIZE_SOFT_LIMIT) or UNKNOWN

    @staticmethod
    def _capacity(output, target):
        fields = last_line(output).split()
        if len(fields) < 6:
            raise ParseFailure("Cannot parse df output for %s: %s" % (target, fields))
        values = []
        for value in fields[1:3]:
            if value == DF_UNKNOWN:  # some filesystems do not count inodes
                values.append(UNKNOWN)
            elif value.isdigit():
                values.append(value)
            else:
                raise ParseFailure("Non-numeric df output for %s: %s" % (target, fields))

        (total, used) = values
        return (used, total)

    def parse(self, output, candidate):
        """@type output: tuple of the df output for space and for inodes"""
        (space, inodes) = output
        (used, total) = self._capacity(space, candidate.path)
        (files, files_total) = self._capacity(inodes, candidate.path)

        size = QuotaValues(used=used, soft=self.soft_limit(candidate), hard=total, grace=UNKNOWN)
        count = QuotaValues(used=files, soft=UNKNOWN, hard=files_total, grace=UNKNOWN)

        return make_record(candidate.quota_type, candidate.path, size, count)


BACKENDS = {
    'quota': GenericBackend,
    'lfs': LustreBackend,
    'panfs': PanfsBackend,
    'df': CapacityBackend,
}


def _backend_class(name):
    if name not in BACKENDS:
        raise FatalConfiguration("Unknown quota backend %s, known are %s" % (name, ", ".join(sorted(BACKENDS))))
    return BACKENDS[name]


def get_backend(name, context):
    return _backend_class(name)(context)


def required_tools(names):
    """The tools needed by the named backends."""
    return sorted(set(_backend_class(name).TOOL for name in names))
