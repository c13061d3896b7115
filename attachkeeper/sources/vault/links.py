"""Link text generation matching the vault's preferred link style."""

from __future__ import annotations

import logging
from urllib.parse import quote

from attachkeeper.sources.vault.store import VaultFile, VaultStore
from attachkeeper.utils.paths import dirname, relative_path

logger = logging.getLogger(__name__)

# Characters left as-is inside markdown link destinations.
_MARKDOWN_SAFE = "/!$&'*+,;=:@~-._"


class LinkGenerator:
    """
    Produces the link text the vault would write for ``target`` when linked
    from ``source_path``.

    Generated links are never embeds; callers that need an image embed add
    the ``!`` prefix themselves (see :func:`attachkeeper.core.references.force_image_link`).
    """

    def __init__(self, store: VaultStore, link_format: str = "markdown", path_style: str = "shortest"):
        self.store = store
        self.link_format = link_format
        self.path_style = path_style

    async def link_path(self, target: VaultFile, source_path: str, *, wiki: bool = False) -> str:
        """Path portion of a link to ``target`` according to the path style."""
        if self.path_style == "absolute":
            path = target.path
        elif self.path_style == "relative":
            path = relative_path(target.path, dirname(source_path))
        else:
            matches = await self.store.find_files_by_name(target.name)
            if len(matches) <= 1:
                path = target.name
            else:
                path = target.path

        if wiki and target.extension == "md" and path.endswith(".md"):
            path = path[: -len(".md")]
        return path

    async def generate_link_text(
        self,
        target: VaultFile,
        source_path: str,
        subpath: str | None = None,
        display_text: str | None = None,
    ) -> str:
        if self.link_format == "wiki":
            path = await self.link_path(target, source_path, wiki=True)
            if subpath:
                path = f"{path}#{subpath}"
            if display_text:
                return f"[[{path}|{display_text}]]"
            return f"[[{path}]]"

        path = quote(await self.link_path(target, source_path), safe=_MARKDOWN_SAFE)
        if subpath:
            path = f"{path}#{quote(subpath, safe=_MARKDOWN_SAFE)}"
        text = display_text if display_text is not None else target.basename
        return f"[{text}]({path})"
