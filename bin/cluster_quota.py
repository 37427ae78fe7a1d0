#!/usr/bin/env python
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
Client-side script to gather the quota of a user and the groups they belong to on the
various mounted filesystems and display it in one table.

- the quota tool used for a filesystem is chosen by the filesystem type
- home directories are reported for the user (and for groups named after a user),
  project directories under groups/<group> for the other groups
- with --all, the quota of every group is reported, which requires root or an
  administrative group
"""
import getpass
import sys

from clusterquota.backends import BACKENDS, required_tools
from clusterquota.report import QuotaReport, gather_quota
from clusterquota.targets import DEFAULT_ADMIN_GROUPS, ReportContext, determine_subjects
from clusterquota.tools import (
    DEFAULT_BACKEND_MAP, DEFAULT_CACHE_NAME, FatalConfiguration,
    check_tools, group_mounts_by_backend, map_users, parse_backend_map, read_mounts,
)
from vsc.utils import fancylogger
from vsc.utils.generaloption import simple_option

fancylogger.logToScreen(True)
fancylogger.setLogLevelWarning()
logger = fancylogger.getLogger('cluster_quota')

CONFIG_FILES = ['/etc/cluster_quota.conf']
EXIT_FATAL = 1


def main():
    """Main script"""

    options = {
        'all': ('Report the quota of all groups (requires privileges)', None, 'store_true', False, 'a'),
        'groups': ('Only report the quota of these groups', 'strlist', 'store', []),
        'normalize': ('Report all sizes in tebibytes', None, 'store_true', False, 'n'),
        'plain_text': ('Do not colour exceeded quota', None, 'store_true', False, 'p'),
        'cache_name': ('Name of the per-directory quota cache file (without the leading dot)', None, 'store',
                       DEFAULT_CACHE_NAME),
        'admin_groups': ('Administrative groups, never reported on', 'strlist', 'store', DEFAULT_ADMIN_GROUPS),
        'mount_prefixes': ('Only consider mounts below these paths', 'strlist', 'store', []),
        'backend_map': ('Quota backend per filesystem type, as fstype:backend (backends: %s)' %
                        ", ".join(sorted(BACKENDS)), 'strlist', 'store', DEFAULT_BACKEND_MAP),
    }
    opts = simple_option(options, config_files=CONFIG_FILES)

    user_name = getpass.getuser()

    try:
        context = ReportContext(
            users=map_users(),
            admin_groups=opts.options.admin_groups,
            cache_name=opts.options.cache_name,
            normalize_unit=opts.options.normalize,
            plain_text=opts.options.plain_text,
        )
        subjects = determine_subjects(user_name, context, report_all=opts.options.all, groups=opts.options.groups)
        logger.debug("Reporting quota for %s", subjects)

        mounts = read_mounts(parse_backend_map(opts.options.backend_map), opts.options.mount_prefixes)
        check_tools(required_tools(group_mounts_by_backend(mounts)))

        records = gather_quota(subjects, mounts, context)
    except FatalConfiguration as err:
        logger.error("Cannot report quota: %s", err)
        sys.exit(EXIT_FATAL)

    for line in QuotaReport(context, records).lines():
        print(line)


if __name__ == '__main__':
    main()
