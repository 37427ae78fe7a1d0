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
Helper functions for running the quota tools and reading what they leave on disk.
"""
import grp
import logging
import os
import pwd
import shutil

from collections import namedtuple

from vsc.utils.run import RunNoShell

MOUNTS_FILE = '/proc/mounts'

DEFAULT_CACHE_NAME = 'quota_cache'
CACHE_PROJECT_ID = 'project_id'
CACHE_SIZE_SOFT_LIMIT = 'size_soft_limit'

DEFAULT_BACKEND_MAP = ['lustre:lfs', 'panfs:panfs', 'nfs:quota', 'nfs4:df', 'xfs:quota', 'ext4:quota']

Mount = namedtuple('Mount', ['mountpoint', 'fstype', 'backend'])


class QuotaException(Exception):
    pass


class ParseFailure(QuotaException):
    """The output of a quota tool (or its cache file) could not be turned into a record."""
    pass


class FatalConfiguration(QuotaException):
    """The report cannot be produced at all."""
    pass


def run_command(cmd, accepted_exit_codes=(0,)):
    """
    Run the command (a list, no shell) and return its output.

    @raises ParseFailure: the command exited with a code not in accepted_exit_codes
    """
    logging.debug("Running %s", cmd)
    (exit_code, output) = RunNoShell.run(cmd)
    if exit_code not in accepted_exit_codes:
        logging.debug("Command %s exited with %s: %s", cmd, exit_code, output)
        raise ParseFailure("Command %s failed with exit code %s" % (" ".join(cmd), exit_code))

    return output


def cache_file_path(directory, cache_name=DEFAULT_CACHE_NAME):
    return os.path.join(directory, ".%s" % (cache_name,))


def read_cache_file(directory, cache_name=DEFAULT_CACHE_NAME):
    """
    Read the key=value lines from the cache file in the given directory.

    Lines without a `=` and comments are ignored.

    @returns: dict with the keys and values as strings
    @raises ParseFailure: the file is missing or cannot be read
    """
    path = cache_file_path(directory, cache_name)
    entries = {}
    try:
        with open(path) as cache:
            for line in cache:
                line = line.strip()
                if not line or line.startswith('#') or '=' not in line:
                    continue
                (key, value) = line.split('=', 1)
                entries[key.strip()] = value.strip()
    except (IOError, OSError, UnicodeDecodeError) as err:
        raise ParseFailure("Cannot read cache file %s: %s" % (path, err))

    return entries


def parse_backend_map(pairs):
    """Turn a list of fstype:backend strings into a dict."""
    backend_map = {}
    for pair in pairs:
        try:
            (fstype, backend) = pair.split(':', 1)
        except ValueError:
            raise FatalConfiguration("Invalid filesystem type to backend mapping: %s" % (pair,))
        backend_map[fstype.strip()] = backend.strip()

    return backend_map


def read_mounts(backend_map, mount_prefixes=None, mounts_file=MOUNTS_FILE):
    """
    List the mounted filesystems that have a quota backend, in the order of the mount table.

    @type backend_map: dict mapping filesystem types to backend names
    @type mount_prefixes: list of paths, if given only mounts at or below one of these are kept

    @returns: list of Mount namedtuples
    """
    mounts = []
    seen = set()
    with open(mounts_file) as mount_table:
        for line in mount_table:
            fields = line.split()
            if len(fields) < 3:
                continue
            (mountpoint, fstype) = (fields[1], fields[2])
            if fstype not in backend_map or mountpoint in seen:
                continue
            if mount_prefixes and not any(_is_below(mountpoint, p) for p in mount_prefixes):
                continue
            seen.add(mountpoint)
            mounts.append(Mount(mountpoint=mountpoint, fstype=fstype, backend=backend_map[fstype]))

    logging.debug("Found the following quota-tracked mounts: %s", mounts)
    return mounts


def _is_below(path, prefix):
    prefix = prefix.rstrip('/') or '/'
    return path == prefix or path.startswith(prefix.rstrip('/') + '/')


def group_mounts_by_backend(mounts):
    grouped = {}
    for mount in mounts:
        grouped.setdefault(mount.backend, []).append(mount.mountpoint)
    return grouped


def check_tools(tools):
    """
    Verify that every required tool can be found.

    @raises FatalConfiguration: naming the first missing tool
    """
    for tool in tools:
        if shutil.which(tool) is None:
            raise FatalConfiguration("Required tool %s was not found in $PATH" % (tool,))


def map_users():
    """The names of all user accounts."""
    return set(u.pw_name for u in pwd.getpwall())


def user_groups(user_name):
    """
    The names of the groups the user belongs to: the primary group first, then the
    supplementary groups sorted by name.
    """
    try:
        primary_gid = pwd.getpwnam(user_name).pw_gid
    except KeyError:
        raise FatalConfiguration("Unknown user %s" % (user_name,))

    try:
        primary = grp.getgrgid(primary_gid).gr_name
    except KeyError:
        raise FatalConfiguration("No group for gid %s, the primary group of %s" % (primary_gid, user_name))

    others = sorted(g.gr_name for g in grp.getgrall() if user_name in g.gr_mem and g.gr_name != primary)
    return [primary] + others


def all_groups():
    return sorted(set(g.gr_name for g in grp.getgrall()))


def group_id(group_name):
    try:
        return grp.getgrnam(group_name).gr_gid
    except KeyError:
        raise ParseFailure("Unknown group %s" % (group_name,))


def is_privileged(user_name, admin_groups):
    """Root, or a member of one of the administrative groups."""
    if os.geteuid() == 0:
        return True

    return any(group in admin_groups for group in user_groups(user_name))
