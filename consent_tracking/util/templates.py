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

import logging
from typing import Any, Callable, Iterable, Mapping, Union

import jinja2

from consent_tracking.api.errors import RenderError

logger = logging.getLogger(__name__)


def build_jinja_env(
    template_search_directories: Iterable[str],
    server_name: str,
    autoescape: Union[bool, Callable[[str], bool], None] = None,
) -> jinja2.Environment:
    """Set up a Jinja2 environment to load templates from the given search path

    The returned environment defines the following global variables:
        - server_name: matrix server name

    Args:
        template_search_directories: directories to search for templates
        server_name: the name of this server
        autoescape: whether template variables should be autoescaped. bool, or
           a function mapping from template name to bool. Defaults to escaping templates
           whose names end in .html, .xml or .htm.

    Returns:
        jinja environment
    """

    if autoescape is None:
        autoescape = jinja2.select_autoescape()

    loader = jinja2.FileSystemLoader(list(template_search_directories))
    env = jinja2.Environment(loader=loader, autoescape=autoescape)

    # common variables for all templates
    env.globals.update({"server_name": server_name})

    return env


class Templater:
    """Renders named templates to bytes.

    Wraps a jinja environment so that the callers deal only in template names
    and data, and see a RenderError on any failure.
    """

    def __init__(self, env: jinja2.Environment, encoding: str = "utf-8"):
        self._env = env
        self._encoding = encoding

    def render(self, template_name: str, data: Mapping[str, Any]) -> bytes:
        try:
            # loaded dynamically to allow easier update cycles. (jinja will only
            # reload it if the mtime changes)
            template = self._env.get_template(template_name)
            return template.render(**data).encode(self._encoding)
        except jinja2.TemplateNotFound:
            raise RenderError("Template %s not found" % (template_name,))
        except jinja2.TemplateError as e:
            logger.warning("Error rendering template %s: %s", template_name, e)
            raise RenderError("Unable to render template %s" % (template_name,))
