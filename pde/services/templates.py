"""Project templates -- scaffolding used when creating a project from the dashboard.

Templates are plain ``ProjectTemplate`` records.  Files flagged ``is_template``
have ``{{variable}}`` placeholders substituted with the project's name,
description, domain, and subdomain when written.
"""

import json
import logging
import re
from pathlib import Path

from pde.models import CreateProjectRequest, ProjectTemplate, TemplateCategory, TemplateFile

logger = logging.getLogger(__name__)


class TemplateNotFoundError(Exception):
    """Raised when a project is requested from an unknown template id."""

    def __init__(self, template_id: str) -> None:
        self.template_id = template_id
        super().__init__(f"Template {template_id!r} not found")


class ProjectExistsError(Exception):
    """Raised when the target project folder already has content."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Project folder {str(path)!r} already exists and is not empty")


_README = """# {{projectName}}

{{description}}
"""

_INDEX_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{{projectName}}</title>
  <meta name="description" content="{{description}}">
  <link rel="stylesheet" href="css/style.css">
</head>
<body>
  <main>
    <h1>{{projectName}}</h1>
    <p>{{description}}</p>
  </main>
  <script src="js/main.js"></script>
</body>
</html>
"""

PROJECT_TEMPLATES: tuple[ProjectTemplate, ...] = (
    ProjectTemplate(
        id="static-html",
        name="Static HTML",
        description="Plain HTML, CSS and JavaScript site",
        category=TemplateCategory.STATIC,
        technologies=["HTML5", "CSS3", "JavaScript"],
        folders=["css", "js", "images"],
        files=[
            TemplateFile(path="index.html", content=_INDEX_HTML, is_template=True),
            TemplateFile(
                path="css/style.css",
                content="/* {{projectName}} */\nbody { font-family: sans-serif; }\n",
                is_template=True,
            ),
            TemplateFile(path="js/main.js", content="console.log('{{projectName}} loaded');\n", is_template=True),
            TemplateFile(path="README.md", content=_README, is_template=True),
        ],
    ),
    ProjectTemplate(
        id="react-deno",
        name="React + Deno",
        description="React application powered by Deno",
        category=TemplateCategory.FRONTEND,
        technologies=["React", "TypeScript", "Deno"],
        folders=["src", "public", "src/components", "src/styles"],
        files=[
            TemplateFile(
                path="deno.json",
                content=json.dumps(
                    {
                        "compilerOptions": {"jsx": "react-jsx", "jsxImportSource": "react"},
                        "imports": {
                            "react": "https://esm.sh/react@18.2.0",
                            "react-dom/client": "https://esm.sh/react-dom@18.2.0/client",
                        },
                    },
                    indent=2,
                ),
            ),
            TemplateFile(
                path="src/main.tsx",
                content=(
                    "import { createRoot } from 'react-dom/client';\n"
                    "import App from './App.tsx';\n\n"
                    "createRoot(document.getElementById('root')!).render(<App />);\n"
                ),
            ),
            TemplateFile(
                path="src/App.tsx",
                content="export default function App() {\n  return <h1>{{projectName}}</h1>;\n}\n",
                is_template=True,
            ),
            TemplateFile(
                path="public/index.html",
                content=(
                    '<!DOCTYPE html>\n<html lang="en">\n<head>\n  <meta charset="UTF-8">\n'
                    "  <title>{{projectName}}</title>\n</head>\n<body>\n"
                    '  <div id="root"></div>\n  <script type="module" src="/src/main.tsx"></script>\n'
                    "</body>\n</html>\n"
                ),
                is_template=True,
            ),
            TemplateFile(path="README.md", content=_README, is_template=True),
        ],
    ),
    ProjectTemplate(
        id="deno-api",
        name="Deno API",
        description="HTTP API served by Deno",
        category=TemplateCategory.BACKEND,
        technologies=["Deno", "TypeScript", "REST"],
        folders=["routes"],
        files=[
            TemplateFile(
                path="deno.json",
                content=json.dumps({"tasks": {"dev": "deno run --watch --allow-net main.ts"}}, indent=2),
            ),
            TemplateFile(
                path="main.ts",
                content=(
                    "Deno.serve({ port: 8000 }, (_req) =>\n"
                    "  Response.json({ name: '{{projectName}}', status: 'ok' })\n);\n"
                ),
                is_template=True,
            ),
            TemplateFile(path="README.md", content=_README, is_template=True),
        ],
    ),
)


def get_template(template_id: str) -> ProjectTemplate | None:
    """Return the template with *template_id*, or ``None``."""
    return next((template for template in PROJECT_TEMPLATES if template.id == template_id), None)


def get_templates_by_category(category: TemplateCategory) -> list[ProjectTemplate]:
    return [template for template in PROJECT_TEMPLATES if template.category == category]


def replace_template_variables(content: str, variables: dict[str, str]) -> str:
    """Substitute every ``{{key}}`` placeholder in *content*.

    Placeholders without a matching variable are left untouched.
    """
    return re.sub(r"\{\{(\w+)\}\}", lambda match: variables.get(match.group(1), match.group(0)), content)


def _safe_segment(value: str) -> str:
    return re.sub(r"[^\w\-. ]", "_", value.strip()).strip(". ")


def project_relative_path(request: CreateProjectRequest) -> Path:
    """Where a new project lives beneath the projects root.

    - domain and subdomain: ``<category>/<domain>/<subdomain>.<domain>``
    - domain only: ``<category>/<domain>``
    - neither: ``<category>/<name>``

    Raises:
        ValueError: If a path segment is empty after sanitising.
    """
    category = request.category.value
    if request.domain:
        domain = _safe_segment(request.domain)
        if request.subdomain:
            segments = [category, domain, _safe_segment(f"{request.subdomain}.{request.domain}")]
        else:
            segments = [category, domain]
    else:
        segments = [category, _safe_segment(request.name)]

    if not all(segments):
        raise ValueError("Invalid project name")
    return Path(*segments)


def create_project_files(projects_root: Path, request: CreateProjectRequest) -> Path:
    """Create the folders and files of *request*'s template under *projects_root*.

    Args:
        projects_root: Root of the projects tree.
        request: Creation parameters.

    Returns:
        Absolute path of the new project folder.

    Raises:
        TemplateNotFoundError: If the template id is unknown.
        ProjectExistsError: If the target folder exists and is not empty.
        ValueError: If the name does not yield a usable folder name.
    """
    template = get_template(request.template)
    if template is None:
        raise TemplateNotFoundError(request.template)

    project_dir = projects_root / project_relative_path(request)
    if project_dir.exists() and any(project_dir.iterdir()):
        raise ProjectExistsError(project_dir)

    project_dir.mkdir(parents=True, exist_ok=True)
    for folder in template.folders:
        (project_dir / folder).mkdir(parents=True, exist_ok=True)

    variables = {
        "projectName": request.name,
        "description": request.description or f"A {template.name} project",
        "domain": request.domain or "",
        "subdomain": request.subdomain or "",
    }
    for template_file in template.files:
        target = project_dir / template_file.path
        target.parent.mkdir(parents=True, exist_ok=True)
        content = template_file.content
        if template_file.is_template:
            content = replace_template_variables(content, variables)
        target.write_text(content, encoding="utf-8")

    logger.info("Created %s project files at %s", template.id, project_dir)
    return project_dir.resolve()
