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
Conversion of the magnitude+unit tokens reported by the quota tools into the
representation used in the report.

All units are powers of 1024. A token without a unit is a raw number of bytes
(or files). Anything that does not look like a magnitude, e.g., the `?` and `NA`
sentinels or a grace period, is not converted.
"""
import re

UNITS = ['', 'k', 'M', 'G', 'T', 'P']
DEFAULT_NORMALISATION_UNIT = 'T'

UNIT_VALUE_REGEX = re.compile(r"^\s*(?P<magnitude>\d[\d,]*(?:\.\d+)?)\s*(?P<unit>[kKMGTP]?)\s*$")

MAX_INTEGER_DIGITS = 5
SENTINEL_PADDING = '  '


def _match(token):
    match = UNIT_VALUE_REGEX.match(token)
    if not match:
        raise ValueError("Not a magnitude with a unit: %s" % (token,))

    magnitude = match.group('magnitude').replace(',', '')
    unit = match.group('unit')
    if unit == 'K':
        unit = 'k'  # quota -s reports kibibytes with an uppercase K

    return magnitude, unit


def parse_unit_value(token):
    """
    Split a token like `1,024.5G` into its magnitude and unit.

    @returns: tuple (float, unit symbol), the unit symbol is '' for raw values
    @raises ValueError: the token is a sentinel or otherwise not a magnitude
    """
    (magnitude, unit) = _match(token)
    return (float(magnitude), unit)


def to_base(token):
    """Return the value of the token in bytes (or files), giving unit values a total order."""
    (magnitude, unit) = parse_unit_value(token)
    return magnitude * 1024 ** UNITS.index(unit)


def reformat(token):
    """
    Render a token for display, moving to larger units while the integer part has more than
    MAX_INTEGER_DIGITS digits.

    Tokens that are not magnitudes are returned padded so they right-align with the
    converted values.
    """
    try:
        (text, unit) = _match(token)
    except ValueError:
        return token + SENTINEL_PADDING

    index = UNITS.index(unit)
    magnitude = float(text)
    while len(str(int(magnitude))) > MAX_INTEGER_DIGITS and index < len(UNITS) - 1:
        magnitude /= 1024
        index += 1
        text = "%.1f" % magnitude

    return "%s %s" % (text, UNITS[index] or ' ')


def normalize_to_unit(token, unit=DEFAULT_NORMALISATION_UNIT):
    """
    Express the token in the given unit, with a single decimal.

    Sentinels are returned unchanged. Applying this twice with the same unit gives the
    same result as applying it once.
    """
    if unit not in UNITS:
        raise ValueError("Unknown unit %s, expected one of %s" % (unit, UNITS))

    try:
        (magnitude, source_unit) = parse_unit_value(token)
    except ValueError:
        return token

    distance = UNITS.index(unit) - UNITS.index(source_unit)
    return "%.1f %s" % (magnitude / 1024.0 ** distance, unit)
