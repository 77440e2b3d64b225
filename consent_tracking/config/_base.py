# -*- coding: utf-8 -*-
# Copyright 2021 The Matrix.org Foundation C.I.C.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from typing import Any, Iterable, Optional


class ConfigError(Exception):
    """Represents a problem parsing the configuration

    Args:
        msg:  A textual description of the error.
        path: Where appropriate, an indication of where in the configuration
           the problem lies.
    """

    def __init__(self, msg: str, path: Optional[Iterable[str]] = None):
        self.msg = msg
        self.path = path

    def __str__(self):
        if self.path:
            return "%s (at %s)" % (self.msg, ".".join(self.path))
        return self.msg


class Config:
    """
    A configuration section, containing configuration keys and values.
    """

    @staticmethod
    def parse_duration(value) -> int:
        """Convert a duration as a string or integer to a number of milliseconds.

        If an integer is provided it is treated as milliseconds and is unchanged.

        String durations can have a suffix of 'ms', 's', 'm', 'h', 'd', 'w', or 'y'.
        No suffix is treated as milliseconds.

        Raises:
            ConfigError if the value cannot be parsed
        """
        if isinstance(value, bool):
            raise ConfigError("Duration must be an integer or a string")
        if isinstance(value, int):
            return value
        if not isinstance(value, str) or not value:
            raise ConfigError("Duration must be an integer or a string")

        second = 1000
        minute = 60 * second
        hour = 60 * minute
        day = 24 * hour
        week = 7 * day
        year = 365 * day
        sizes = {"s": second, "m": minute, "h": hour, "d": day, "w": week, "y": year}
        size = 1
        if value.endswith("ms"):
            value = value[:-2]
        elif value[-1] in sizes:
            size = sizes[value[-1]]
            value = value[:-1]
        try:
            return int(value) * size
        except ValueError:
            raise ConfigError("Unable to parse duration %r" % (value,))

    @staticmethod
    def read_string(config: dict, key: str, default: Any = None, required=False):
        value = config.get(key, default)
        if value is None:
            if required:
                raise ConfigError("Missing mandatory option", (key,))
            return None
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise ConfigError("Option must be a string", (key,))
        return str(value)

    def read_config(self, config: dict, **kwargs):
        raise NotImplementedError()
