"""Static template directories.

Some generators ship a directory of ready-made files (components, configs)
alongside their code.  :class:`StaticTemplateWalker` copies such a
directory into the node's output: files matching one of the generator's
path mappings are routed through that category, the rest are namespaced
under ``packages/<namespace>/``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from blueprint_forge.codegen.output import CodegenOutput, GeneratedFile
from blueprint_forge.registry import GeneratorDescriptor
from blueprint_forge.routing import match_category

logger = logging.getLogger(__name__)

SKIP_DIRS = frozenset({"node_modules", "dist", "build", "target", ".next", "__pycache__"})
LOCK_FILES = frozenset(
    {"package-lock.json", "pnpm-lock.yaml", "yarn.lock", "Cargo.lock", "poetry.lock"}
)


class StaticTemplateWalker:
    """Collects the files of a descriptor's ``template_dir``."""

    def collect(self, descriptor: GeneratorDescriptor) -> list[GeneratedFile]:
        """Return the generated files for *descriptor*, sorted by source path.

        Returns an empty list when the descriptor has no template directory
        or the directory does not exist.
        """
        root = descriptor.template_dir
        if root is None:
            return []
        root = Path(root)
        if not root.is_dir():
            logger.warning("Template directory for %s does not exist: %s", descriptor.id, root)
            return []

        namespace = descriptor.template_namespace or descriptor.id
        files: list[GeneratedFile] = []
        for source in self._iter_files(root):
            rel = source.relative_to(root).as_posix()
            content = _read(source)
            matched = match_category(rel, descriptor.path_mappings)
            if matched is not None:
                category, relative = matched
                files.append(GeneratedFile(path=relative, content=content, category=category))
            else:
                files.append(GeneratedFile(path=f"packages/{namespace}/{rel}", content=content))
        logger.debug("Collected %d static file(s) for %s", len(files), descriptor.id)
        return files

    def apply(self, descriptor: GeneratorDescriptor, output: CodegenOutput) -> int:
        """Add the collected files to *output*; return how many were added."""
        files = self.collect(descriptor)
        for item in files:
            output.add_file(item.path, item.content, item.category)
        return len(files)

    def _iter_files(self, directory: Path):
        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            if entry.name.startswith("."):
                continue
            if entry.is_dir():
                if entry.name in SKIP_DIRS:
                    continue
                yield from self._iter_files(entry)
            elif entry.is_file() and entry.name not in LOCK_FILES:
                yield entry


def _read(path: Path) -> str | bytes:
    data = path.read_bytes()
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data
