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
Tests for locating quota targets in clusterquota.targets.
"""
import os
import shutil
import tempfile

import mock

from clusterquota.entities import (
    CandidateTarget, QUOTA_TYPE_GROUP, QUOTA_TYPE_PRIVATE_GROUP, SUBJECT_GROUP, SUBJECT_USER,
)
from clusterquota.targets import ReportContext, determine_subjects, resolve_targets
from clusterquota.tools import FatalConfiguration

from vsc.install.testing import TestCase


class TestResolveTargets(TestCase):
    """
    Build a small directory tree that looks like a cluster filesystem and check which targets
    are found in it.
    """

    def setUp(self):
        super(TestResolveTargets, self).setUp()
        self.mount = tempfile.mkdtemp()
        self.context = ReportContext(users=['jdoe', 'asmith'], admin_groups=['admin'])

        for directory in [
            ('home', 'jdoe'),
            ('groups', 'umcg-gcc', 'prm01'),
            ('groups', 'umcg-gcc', 'tmp01'),
            ('groups', 'admin', 'prm01'),
            ('groups', 'umcg-empty'),
        ]:
            os.makedirs(os.path.join(self.mount, *directory))

        os.makedirs(os.path.join(self.mount, 'groups', 'umcg-gcc', '.snapshots'))
        with open(os.path.join(self.mount, 'groups', 'umcg-gcc', 'README'), 'w') as readme:
            readme.write("not a project\n")

    def tearDown(self):
        shutil.rmtree(self.mount)
        super(TestResolveTargets, self).tearDown()

    def test_user_home(self):
        self.assertEqual(resolve_targets('jdoe', SUBJECT_USER, self.mount, self.context), [
            CandidateTarget(subject='jdoe', mount=self.mount, path=os.path.join(self.mount, 'home', 'jdoe'),
                            quota_type=QUOTA_TYPE_PRIVATE_GROUP),
        ])

    def test_private_group(self):
        """A group named after a user is looked up as a home directory"""
        candidates = resolve_targets('jdoe', SUBJECT_GROUP, self.mount, self.context)
        self.assertEqual([c.path for c in candidates], [os.path.join(self.mount, 'home', 'jdoe')])
        self.assertEqual(candidates[0].quota_type, QUOTA_TYPE_PRIVATE_GROUP)

    def test_home_root(self):
        """When the mount is the home root, the home directory is right below it"""
        home = os.path.join(self.mount, 'home')
        candidates = resolve_targets('jdoe', SUBJECT_USER, home, self.context)
        self.assertEqual([c.path for c in candidates], [os.path.join(home, 'jdoe')])

    def test_missing_home(self):
        self.assertEqual(resolve_targets('asmith', SUBJECT_USER, self.mount, self.context), [])

    def test_group_projects(self):
        """Every project directory of a group is a target of its own"""
        candidates = resolve_targets('umcg-gcc', SUBJECT_GROUP, self.mount, self.context)

        self.assertEqual(len(candidates), 2)
        self.assertEqual([c.path for c in candidates], [
            os.path.join(self.mount, 'groups', 'umcg-gcc', 'prm01'),
            os.path.join(self.mount, 'groups', 'umcg-gcc', 'tmp01'),
        ])
        for candidate in candidates:
            self.assertEqual(candidate.quota_type, QUOTA_TYPE_GROUP)
            self.assertEqual(candidate.mount, self.mount)
            self.assertEqual(candidate.subject, 'umcg-gcc')

    def test_mount_inside_group(self):
        """A mount below groups/<group>/ is a target as a whole"""
        mount = '/groups/umcg-gcc/tmp01'
        self.assertEqual(resolve_targets('umcg-gcc', SUBJECT_GROUP, mount, self.context), [
            CandidateTarget(subject='umcg-gcc', mount=mount, path=mount, quota_type=QUOTA_TYPE_GROUP),
        ])
        self.assertEqual(resolve_targets('umcg-other', SUBJECT_GROUP, mount, self.context), [])

    def test_mount_is_group_directory(self):
        mount = os.path.join(self.mount, 'groups', 'umcg-gcc')
        candidates = resolve_targets('umcg-gcc', SUBJECT_GROUP, mount, self.context)
        self.assertEqual([os.path.basename(c.path) for c in candidates], ['prm01', 'tmp01'])

    def test_no_quota(self):
        self.assertEqual(resolve_targets('umcg-empty', SUBJECT_GROUP, self.mount, self.context), [])
        self.assertEqual(resolve_targets('umcg-unknown', SUBJECT_GROUP, self.mount, self.context), [])

    def test_admin_group(self):
        self.assertEqual(resolve_targets('admin', SUBJECT_GROUP, self.mount, self.context), [])


class TestReportContext(TestCase):

    def test_defaults(self):
        context = ReportContext()
        self.assertEqual(context.admin_groups, set(['admin']))
        self.assertEqual(context.cache_name, 'quota_cache')
        self.assertFalse(context.normalize_unit)
        self.assertFalse(context.plain_text)
        self.assertFalse(context.is_private_group('jdoe'))

    def test_private_group(self):
        context = ReportContext(users=['jdoe'], admin_groups=[])
        self.assertTrue(context.is_private_group('jdoe'))
        self.assertEqual(context.admin_groups, set())


class TestDetermineSubjects(TestCase):
    """Which users and groups end up in the report, and who may ask for what."""

    def setUp(self):
        super(TestDetermineSubjects, self).setUp()
        self.context = ReportContext(users=['jdoe'], admin_groups=['admin'])

    @mock.patch('clusterquota.targets.user_groups')
    def test_own_groups(self, mock_user_groups):
        """The private group is not repeated after the user"""
        mock_user_groups.return_value = ['jdoe', 'umcg-atd', 'umcg-gcc']

        self.assertEqual(determine_subjects('jdoe', self.context), [
            ('jdoe', SUBJECT_USER),
            ('umcg-atd', SUBJECT_GROUP),
            ('umcg-gcc', SUBJECT_GROUP),
        ])

    @mock.patch('clusterquota.targets.is_privileged')
    @mock.patch('clusterquota.targets.user_groups')
    def test_selected_groups(self, mock_user_groups, mock_is_privileged):
        mock_user_groups.return_value = ['jdoe', 'umcg-atd', 'umcg-gcc']
        mock_is_privileged.return_value = False

        self.assertEqual(determine_subjects('jdoe', self.context, groups=['umcg-gcc']), [('umcg-gcc', SUBJECT_GROUP)])
        self.assertErrorRegex(FatalConfiguration, "jdoe is not a member of umcg-lab",
                              determine_subjects, 'jdoe', self.context, groups=['umcg-gcc', 'umcg-lab'])

        mock_is_privileged.return_value = True
        self.assertEqual(determine_subjects('jdoe', self.context, groups=['umcg-lab']), [('umcg-lab', SUBJECT_GROUP)])

    @mock.patch('clusterquota.targets.all_groups')
    @mock.patch('clusterquota.targets.is_privileged')
    def test_all(self, mock_is_privileged, mock_all_groups):
        mock_all_groups.return_value = ['admin', 'umcg-atd', 'umcg-gcc']

        mock_is_privileged.return_value = False
        self.assertErrorRegex(FatalConfiguration, "Only root or members of admin",
                              determine_subjects, 'jdoe', self.context, report_all=True)
        self.assertFalse(mock_all_groups.called)

        mock_is_privileged.return_value = True
        self.assertEqual(determine_subjects('root', self.context, report_all=True), [
            ('admin', SUBJECT_GROUP),
            ('umcg-atd', SUBJECT_GROUP),
            ('umcg-gcc', SUBJECT_GROUP),
        ])
