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

from collections import namedtuple

from consent_tracking.api.errors import Codes, ValidationError


class UserID(namedtuple("UserID", ("localpart", "domain"))):
    """Structure representing a user ID, of the form @localpart:domain"""

    SIGIL = "@"

    # Deny iteration because it will bite you if you try to create a singleton
    # set by:
    #    users = set(user)
    def __iter__(self):
        raise ValueError("Attempted to iterate a %s" % (type(self).__name__,))

    # Because this class is a namedtuple of strings and booleans, it is deeply
    # immutable.
    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    @classmethod
    def from_string(cls, s: str) -> "UserID":
        """Parse the string given by 's' into a structure object."""
        if not isinstance(s, str) or len(s) < 1 or s[0:1] != cls.SIGIL:
            raise ValidationError(
                "Expected user ID to start with '%s'" % (cls.SIGIL,),
                errcode=Codes.INVALID_USERNAME,
            )

        parts = s[1:].split(":", 1)
        if len(parts) != 2:
            raise ValidationError(
                "User ID %r has no domain component" % (s,),
                errcode=Codes.INVALID_USERNAME,
            )

        localpart, domain = parts
        if not localpart or not domain:
            raise ValidationError(
                "User ID %r has an empty localpart or domain" % (s,),
                errcode=Codes.INVALID_USERNAME,
            )

        return cls(localpart, domain)

    def to_string(self) -> str:
        """Return a string encoding the fields of the structure object."""
        return "%s%s:%s" % (self.SIGIL, self.localpart, self.domain)

    __repr__ = to_string
    __str__ = to_string
