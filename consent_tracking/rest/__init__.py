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

from typing import TYPE_CHECKING, Mapping

from twisted.web.resource import Resource

from consent_tracking.crypto.link_token import CONSENT_PATH
from consent_tracking.rest.consent import ConsentResource

if TYPE_CHECKING:
    from consent_tracking.server import ConsentServer


def build_consent_resource_tree(hs: "ConsentServer") -> Mapping[str, Resource]:
    """Builds a resource tree to include the resources used for policy consent.

    Nothing is mounted unless the user_consent section is configured.

    Returns:
         map from path to Resource.
    """
    resources = {}

    if hs.config.consent_enabled:
        resources[CONSENT_PATH] = ConsentResource(hs)

    return resources


def create_resource_tree(hs: "ConsentServer") -> Resource:
    """Create the resource tree for the consent listener, ready to be wrapped
    in a twisted.web.server.Site.

    Returns:
        the root Resource, with each resource from build_consent_resource_tree
        mounted under its path.
    """
    root_resource = Resource()

    for full_path, res in build_consent_resource_tree(hs).items():
        # e.g. "/_matrix/client/consent" -> [b"_matrix", b"client", b"consent"]
        path_elements = [p.encode("ascii") for p in full_path.strip("/").split("/")]

        parent = root_resource
        for element in path_elements[:-1]:
            child = parent.children.get(element)
            if child is None:
                child = Resource()
                parent.putChild(element, child)
            parent = child

        parent.putChild(path_elements[-1], res)

    return root_resource


__all__ = ["build_consent_resource_tree", "create_resource_tree"]
