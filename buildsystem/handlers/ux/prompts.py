"""Prompt builders for the UX sitemap stages."""


def sitemap_structure_prompt(project_name: str, sitemap_doc: str, platform: str) -> str:
    return f"""You are a senior UX designer. Turn the sitemap document below into a UX sitemap
structure document for the project "{project_name}" on the {platform} platform.

Write one top-level section per page, using exactly this heading form:

## <number> <Page name>

Under each heading describe the page's purpose, its main components, the
navigation into and out of it, and the user stories it covers. Use ###
headings inside a page if you need them, never ##.

Return markdown only, without wrapping it in a code block.

Sitemap document:
{sitemap_doc}
"""


def level2_sitemap_structure_prompt(
    project_name: str, section_content: str, sitemap_doc: str, platform: str
) -> str:
    return f"""You are a senior UX designer detailing one page of "{project_name}" for the
{platform} platform.

Expand the page section below into a level-2 structure: list every UI region
of the page, the components inside each region, their states, the data they
show, and the interactions a user can perform. Keep the page's original
heading line as the first line of your answer and keep the numbering.

Return markdown only, without wrapping it in a code block.

Full sitemap document, for context:
{sitemap_doc}

Page section to expand:
{section_content}
"""
