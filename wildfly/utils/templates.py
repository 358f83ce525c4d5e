import os
from typing import List, Optional
from jinja2 import (
    Environment,
    FileSystemLoader,
    PackageLoader,
    StrictUndefined,
    TemplateError,
)
from wildfly.types.models.wildflyappserver_spec import DataSource
from wildfly.utils.errors import ConfigRenderError

BUNDLED_TEMPLATE = "standalone.xml.j2"


def template_environment(template_path: Optional[str] = None) -> Environment:
    """Jinja environment loading either the given template file's directory
    or the templates bundled with the operator."""
    if template_path:
        loader = FileSystemLoader(os.path.dirname(os.path.abspath(template_path)))
    else:
        loader = PackageLoader("wildfly", "templates")
    return Environment(
        loader=loader,
        autoescape=True,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )


def render_server_config(
    data_sources: List[DataSource], template_path: Optional[str] = None
) -> str:
    """Render the server configuration document for the given datasources.

    Raises:
        ConfigRenderError: the template is missing, malformed or rendered empty.
    """
    name = os.path.basename(template_path) if template_path else BUNDLED_TEMPLATE
    try:
        template = template_environment(template_path).get_template(name)
        rendered = template.render(data_sources=data_sources)
    except (TemplateError, OSError) as ex:
        raise ConfigRenderError(
            f"Could not render server configuration from `{name}`: {ex}"
        ) from ex
    if not rendered.strip():
        raise ConfigRenderError(f"Server configuration rendered from `{name}` is empty.")
    return rendered
