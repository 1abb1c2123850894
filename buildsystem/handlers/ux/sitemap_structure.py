"""UX sitemap structure handlers.

UXSitemapStructureHandler turns the sitemap document into a UX structure
document with one ``##`` section per page. Level2UXSitemapStructureHandler
then expands every page section in parallel and stitches the answers back
together in page order.
"""

import logging
from typing import Any, Optional

from ... import config as settings
from ...errors import MissingConfigurationError, ResponseParsingError
from ...pipeline.base import BuildHandler
from ...pipeline.clock import ClockedSynchronizer
from ...pipeline.context import (
    MODEL,
    PLATFORM,
    PROJECT_NAME,
    UX_SITEMAP_DOC,
    UX_SITEMAP_STRUCTURE,
    UX_SITEMAP_STRUCTURE_LEVEL2,
    ContextKey,
    ExecutionContext,
)
from ...pipeline.sections import extract_sections
from ...providers.base import GenerationRequest
from ...utils.strings import normalize_line_endings, remove_code_block_fences
from .prompts import level2_sitemap_structure_prompt, sitemap_structure_prompt

logger = logging.getLogger(__name__)

SECTION_SEPARATOR = "\n\n"


def read_setting(context: ExecutionContext, key: str, default: str) -> str:
    """
    Read a string global setting, falling back to a default.

    Raises:
        MissingConfigurationError: If the setting is present but not a non-empty string
    """
    value = context.get_global_config(key)
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise MissingConfigurationError(f"Missing or invalid {key}.")
    return value


def read_document(context: ExecutionContext, key: ContextKey, label: str) -> str:
    """
    Read an upstream text artifact.

    Raises:
        MissingConfigurationError: If it is absent, not a string or blank
    """
    document: Any = context.get_artifact(key)
    if not isinstance(document, str) or not document.strip():
        raise MissingConfigurationError(f"Missing or invalid {label} ({key}).")
    return document


class UXSitemapStructureHandler(BuildHandler):
    """Generates the UX sitemap structure document from the sitemap document."""

    def __init__(
        self,
        synchronizer: ClockedSynchronizer,
        sitemap_key: ContextKey = UX_SITEMAP_DOC,
        temperature: Optional[float] = None,
    ):
        self.id = UX_SITEMAP_STRUCTURE
        self.synchronizer = synchronizer
        self.sitemap_key = sitemap_key
        self.requires = (sitemap_key,)
        self.temperature = temperature

    async def generate(self, context: ExecutionContext) -> str:
        project_name = read_setting(context, PROJECT_NAME, settings.DEFAULT_PROJECT_NAME)
        platform = read_setting(context, PLATFORM, settings.DEFAULT_PLATFORM)
        model = read_setting(context, MODEL, settings.DEFAULT_MODEL)
        sitemap_doc = read_document(context, self.sitemap_key, "sitemap document")

        request = GenerationRequest.from_prompt(
            model,
            sitemap_structure_prompt(project_name, sitemap_doc, platform),
            temperature=self.temperature,
        )
        content = await self.synchronizer.call_one(
            context, "generate UX sitemap structure", self.id, request
        )

        content = remove_code_block_fences(content)
        if not content:
            raise ResponseParsingError("Generated UX Sitemap Structure content is empty.")
        return content


class Level2UXSitemapStructureHandler(BuildHandler):
    """
    Expands each page section of the UX structure document in parallel.

    The sitemap document and the UX structure document are read from two
    keys; pass the same key twice to run from a single document.
    """

    def __init__(
        self,
        synchronizer: ClockedSynchronizer,
        sitemap_key: ContextKey = UX_SITEMAP_DOC,
        structure_key: ContextKey = UX_SITEMAP_STRUCTURE,
        temperature: Optional[float] = None,
    ):
        self.id = UX_SITEMAP_STRUCTURE_LEVEL2
        self.synchronizer = synchronizer
        self.sitemap_key = sitemap_key
        self.structure_key = structure_key
        self.requires = tuple(dict.fromkeys([sitemap_key, structure_key]))
        self.temperature = temperature

    async def generate(self, context: ExecutionContext) -> str:
        # All inputs are validated before the first generation call
        project_name = read_setting(context, PROJECT_NAME, settings.DEFAULT_PROJECT_NAME)
        platform = read_setting(context, PLATFORM, settings.DEFAULT_PLATFORM)
        model = read_setting(context, MODEL, settings.DEFAULT_MODEL)
        sitemap_doc = read_document(context, self.sitemap_key, "sitemap document")
        structure_doc = read_document(
            context, self.structure_key, "UX Structure document"
        )

        sections = extract_sections(normalize_line_endings(structure_doc))
        if not sections:
            raise ResponseParsingError(
                "No valid sections found in the UX Structure Document."
            )
        logger.info(f"{self.name}: expanding {len(sections)} sections")

        requests = [
            GenerationRequest.from_prompt(
                model,
                level2_sitemap_structure_prompt(
                    project_name, section.content, sitemap_doc, platform
                ),
                temperature=self.temperature,
            )
            for section in sections
        ]

        refined = await self.synchronizer.call_batch(
            context, "generate page-by-page by sections", self.id, requests
        )

        document = SECTION_SEPARATOR.join(
            remove_code_block_fences(part) for part in refined
        )
        return remove_code_block_fences(document)
