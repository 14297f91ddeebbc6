"""Source chunking: tree-sitter declarations with a line-window fallback."""

from __future__ import annotations

import dataclasses
import functools
import logging
import os
from typing import Dict, FrozenSet, Iterator, List, Optional, Tuple

import tree_sitter_language_pack

from .models import ChunkingMode, ChunkingStrategy, ChunkPart, NodeKind

logger = logging.getLogger(__name__)

# Structural chunks longer than chunk_size * this factor are re-split by lines.
OVERSIZE_FACTOR = 1.35

# Languages with a declaration table below, keyed by file extension.
EXT_TO_LANG = {
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".cxx": "cpp",
    ".hpp": "cpp",
    ".c": "c",
    ".h": "c",
    ".php": "php",
    ".rb": "ruby",
    ".cs": "csharp",
}


def get_language_for_file(filename: str) -> Optional[str]:
    """Get grammar name from file extension."""
    _, ext = os.path.splitext(filename)
    return EXT_TO_LANG.get(ext.lower())


def detect_language(filename: str) -> str:
    """Language tag stored with each chunk.

    The grammar name when one is known, otherwise the bare extension, otherwise
    ``"text"``.
    """
    lang = get_language_for_file(filename)
    if lang:
        return lang
    _, ext = os.path.splitext(filename)
    return ext.lower().lstrip(".") or "text"


# -----------------------------------------------------------------------------
# Declaration tables
# -----------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class Grammar:
    """Which syntax nodes of one language become structural chunks.

    Attributes:
        kinds: node type -> declaration kind
        variables: node types chunked as a variable group when at module level
        wrappers: node types that enclose a declaration and belong to its text
            (``export``, decorators, templates)
        constructor_names: method names reported as ``Constructor``
    """

    kinds: Dict[str, NodeKind]
    variables: FrozenSet[str] = frozenset()
    wrappers: FrozenSet[str] = frozenset()
    constructor_names: FrozenSet[str] = frozenset()


_JS_KINDS = {
    "function_declaration": NodeKind.FUNCTION,
    "generator_function_declaration": NodeKind.FUNCTION,
    "class_declaration": NodeKind.CLASS,
    "method_definition": NodeKind.METHOD,
}

_TS_KINDS = dict(
    _JS_KINDS,
    abstract_class_declaration=NodeKind.CLASS,
    interface_declaration=NodeKind.INTERFACE,
    type_alias_declaration=NodeKind.TYPE_ALIAS,
    enum_declaration=NodeKind.ENUM,
)

_C_KINDS = {
    "function_definition": NodeKind.FUNCTION,
    "struct_specifier": NodeKind.CLASS,
    "union_specifier": NodeKind.CLASS,
    "enum_specifier": NodeKind.ENUM,
    "type_definition": NodeKind.TYPE_ALIAS,
}

GRAMMARS: Dict[str, Grammar] = {
    "python": Grammar(
        kinds={
            "function_definition": NodeKind.FUNCTION,
            "class_definition": NodeKind.CLASS,
        },
        variables=frozenset({"expression_statement", "assignment"}),
        wrappers=frozenset({"decorated_definition"}),
        constructor_names=frozenset({"__init__"}),
    ),
    "javascript": Grammar(
        kinds=_JS_KINDS,
        variables=frozenset({"lexical_declaration", "variable_declaration"}),
        wrappers=frozenset({"export_statement"}),
        constructor_names=frozenset({"constructor"}),
    ),
    "typescript": Grammar(
        kinds=_TS_KINDS,
        variables=frozenset({"lexical_declaration", "variable_declaration"}),
        wrappers=frozenset({"export_statement"}),
        constructor_names=frozenset({"constructor"}),
    ),
    "tsx": Grammar(
        kinds=_TS_KINDS,
        variables=frozenset({"lexical_declaration", "variable_declaration"}),
        wrappers=frozenset({"export_statement"}),
        constructor_names=frozenset({"constructor"}),
    ),
    "go": Grammar(
        kinds={
            "function_declaration": NodeKind.FUNCTION,
            "method_declaration": NodeKind.METHOD,
            "type_declaration": NodeKind.TYPE_ALIAS,
        },
        variables=frozenset({"var_declaration", "const_declaration"}),
    ),
    "rust": Grammar(
        kinds={
            "function_item": NodeKind.FUNCTION,
            "struct_item": NodeKind.CLASS,
            "union_item": NodeKind.CLASS,
            "impl_item": NodeKind.CLASS,
            "trait_item": NodeKind.INTERFACE,
            "enum_item": NodeKind.ENUM,
            "type_item": NodeKind.TYPE_ALIAS,
        },
        variables=frozenset({"const_item", "static_item"}),
    ),
    "java": Grammar(
        kinds={
            "class_declaration": NodeKind.CLASS,
            "record_declaration": NodeKind.CLASS,
            "interface_declaration": NodeKind.INTERFACE,
            "annotation_type_declaration": NodeKind.INTERFACE,
            "enum_declaration": NodeKind.ENUM,
            "method_declaration": NodeKind.METHOD,
            "constructor_declaration": NodeKind.CONSTRUCTOR,
        },
    ),
    "csharp": Grammar(
        kinds={
            "class_declaration": NodeKind.CLASS,
            "struct_declaration": NodeKind.CLASS,
            "record_declaration": NodeKind.CLASS,
            "interface_declaration": NodeKind.INTERFACE,
            "enum_declaration": NodeKind.ENUM,
            "method_declaration": NodeKind.METHOD,
            "constructor_declaration": NodeKind.CONSTRUCTOR,
        },
    ),
    "c": Grammar(kinds=_C_KINDS),
    "cpp": Grammar(
        kinds=dict(
            _C_KINDS,
            class_specifier=NodeKind.CLASS,
            alias_declaration=NodeKind.TYPE_ALIAS,
        ),
        wrappers=frozenset({"template_declaration"}),
    ),
    "php": Grammar(
        kinds={
            "function_definition": NodeKind.FUNCTION,
            "class_declaration": NodeKind.CLASS,
            "trait_declaration": NodeKind.CLASS,
            "interface_declaration": NodeKind.INTERFACE,
            "enum_declaration": NodeKind.ENUM,
            "method_declaration": NodeKind.METHOD,
        },
        constructor_names=frozenset({"__construct"}),
    ),
    "ruby": Grammar(
        kinds={
            "method": NodeKind.FUNCTION,
            "singleton_method": NodeKind.METHOD,
            "class": NodeKind.CLASS,
            "module": NodeKind.CLASS,
        },
        constructor_names=frozenset({"initialize"}),
    ),
}

# Kinds whose nested functions are methods.
_CONTAINER_KINDS = frozenset({NodeKind.CLASS, NodeKind.INTERFACE, NodeKind.ENUM})

# Specifiers that are only declarations when they carry a body.
_BODY_REQUIRED = frozenset({"struct_specifier", "union_specifier", "enum_specifier", "class_specifier"})


def resolve_grammar(language: Optional[str], file_path: Optional[str] = None) -> Optional[str]:
    """Return the grammar name usable for ``language``/``file_path``, if any."""
    if language and language in GRAMMARS:
        return language
    if file_path:
        return get_language_for_file(file_path)
    return None


@functools.lru_cache(maxsize=None)
def _get_parser(language: str):
    return tree_sitter_language_pack.get_parser(language)


# -----------------------------------------------------------------------------
# Syntax helpers
# -----------------------------------------------------------------------------

def _node_text(node) -> str:
    return node.text.decode("utf-8", errors="replace") if node.text is not None else ""


def _declared_name(node) -> Optional[str]:
    if node.type == "impl_item":
        target = node.child_by_field_name("type")
        return _node_text(target) if target is not None else None

    name = node.child_by_field_name("name")
    if name is not None:
        return _node_text(name)

    # C/C++: function_definition -> function_declarator -> identifier
    declarator = node.child_by_field_name("declarator")
    while declarator is not None:
        inner = declarator.child_by_field_name("declarator")
        if inner is None:
            return _node_text(declarator)
        declarator = inner
    return None


def _go_type_kind(node) -> NodeKind:
    specs = [c for c in node.named_children if c.type in ("type_spec", "type_alias")]
    if len(specs) == 1 and specs[0].type == "type_spec":
        body = specs[0].child_by_field_name("type")
        if body is not None and body.type == "struct_type":
            return NodeKind.CLASS
        if body is not None and body.type == "interface_type":
            return NodeKind.INTERFACE
    return NodeKind.TYPE_ALIAS


def _go_type_symbol(node) -> Optional[str]:
    names = []
    for spec in node.named_children:
        name = spec.child_by_field_name("name")
        if name is not None:
            names.append(_node_text(name))
    return ", ".join(names) or None


def _variable_names(node) -> List[str]:
    """Declared names of a variable group (``const a = 1, b = 2`` -> a, b)."""
    if node.type == "expression_statement":
        node = node.named_children[0] if node.named_children else None
        if node is None or node.type != "assignment":
            return []
    if node.type == "assignment":
        left = node.child_by_field_name("left")
        return [_node_text(left)] if left is not None else []

    names: List[str] = []
    direct = node.children_by_field_name("name")
    if direct:
        return [_node_text(n) for n in direct]

    # Declarators sit at most two levels down (Go wraps specs in *_spec_list).
    frontier = list(node.named_children)
    for _ in range(2):
        nested = []
        for child in frontier:
            found = child.children_by_field_name("name")
            if found:
                names.extend(_node_text(n) for n in found)
            else:
                nested.extend(child.named_children)
        frontier = nested
    return names


def _classify(
    node, grammar: Grammar, container: Optional[NodeKind], top_level: bool
) -> Optional[Tuple[NodeKind, Optional[str]]]:
    """Return (kind, symbol) for a chunkable node, None otherwise."""
    node_type = node.type

    if node_type in grammar.kinds:
        if node_type in _BODY_REQUIRED and node.child_by_field_name("body") is None:
            return None
        if node_type == "type_declaration":
            return _go_type_kind(node), _go_type_symbol(node)

        kind = grammar.kinds[node_type]
        symbol = _declared_name(node)
        if kind == NodeKind.FUNCTION and container in _CONTAINER_KINDS:
            kind = NodeKind.METHOD
        if kind == NodeKind.METHOD and symbol in grammar.constructor_names:
            kind = NodeKind.CONSTRUCTOR
        return kind, symbol

    if node_type in grammar.variables and top_level:
        names = _variable_names(node)
        if not names:
            return None
        return NodeKind.VARIABLE, ", ".join(names)

    return None


def _iter_declarations(root, grammar: Grammar) -> Iterator[Tuple[object, NodeKind, Optional[str]]]:
    """Walk the whole tree, yielding (span, kind, symbol) for every declaration.

    ``span`` is the outermost wrapper (export, decorator, template) around the
    declaration, or the declaration itself. Wrappers are transparent for the
    module-level check, so an exported ``const`` is still a module variable.
    """
    # (node, enclosing declaration kind, directly under the root, outermost wrapper)
    stack: List[Tuple[object, Optional[NodeKind], bool, object]] = [(root, None, False, None)]
    while stack:
        node, container, top_level, wrapper = stack.pop()
        found = _classify(node, grammar, container, top_level)
        if found is not None:
            kind, symbol = found
            yield (wrapper or node), kind, symbol
            container = kind

        if node.type in grammar.wrappers:
            child_top, child_wrapper = top_level, wrapper or node
        else:
            child_top, child_wrapper = node is root, None
        for child in reversed(node.named_children):
            stack.append((child, container, child_top, child_wrapper))


# -----------------------------------------------------------------------------
# Interfaces
# -----------------------------------------------------------------------------

class Chunker:
    """Abstract base class for source chunking."""

    def chunk(self, text: str, file_path: Optional[str] = None, language: Optional[str] = None) -> List[ChunkPart]:
        """Split a file into chunks.

        Args:
            text: Full file text
            file_path: Path of the file (for grammar detection)
            language: Language tag of the file, if already known

        Returns:
            Chunks sorted by (start_line, end_line)
        """
        raise NotImplementedError


class DefaultChunker(Chunker):
    """Structural chunking where a grammar exists, windowed chunking otherwise."""

    def __init__(
        self,
        mode: ChunkingMode = ChunkingMode.STRUCTURAL,
        chunk_size: int = 1400,
        overlap_lines: int = 20,
    ):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if overlap_lines < 0:
            raise ValueError(f"overlap_lines must not be negative, got {overlap_lines}")
        self.mode = ChunkingMode(mode)
        self.chunk_size = chunk_size
        self.overlap_lines = overlap_lines

    def chunk(self, text: str, file_path: Optional[str] = None, language: Optional[str] = None) -> List[ChunkPart]:
        text = text.replace("\r\n", "\n")
        grammar_name = resolve_grammar(language, file_path)

        if self.mode == ChunkingMode.STRUCTURAL and grammar_name:
            try:
                parts = chunk_structural(text, grammar_name, self.chunk_size, self.overlap_lines)
            except Exception as e:
                logger.warning(
                    f"Structural chunking failed for {file_path or 'unknown'}, falling back to windowed: {e}",
                    exc_info=True,
                )
                parts = []
            if parts:
                return parts
            logger.debug(f"No declarations in {file_path or 'unknown'}, using windowed chunking")

        return chunk_text_by_lines(text, self.chunk_size, self.overlap_lines)


def chunk_source(
    text: str,
    file_path: Optional[str] = None,
    language: Optional[str] = None,
    mode: ChunkingMode = ChunkingMode.STRUCTURAL,
    chunk_size: int = 1400,
    overlap_lines: int = 20,
) -> List[ChunkPart]:
    """Chunk one file (Functional Wrapper)."""
    chunker = DefaultChunker(mode=mode, chunk_size=chunk_size, overlap_lines=overlap_lines)
    return chunker.chunk(text, file_path=file_path, language=language)


def chunk_structural(text: str, language: str, chunk_size: int, overlap_lines: int) -> List[ChunkPart]:
    """One chunk per declaration found anywhere in the syntax tree.

    Strategy:
    1. Parse the file and walk every node
    2. Each declaration (function, class, interface, enum, type alias, method,
       constructor, module-level variable group) becomes one chunk, including
       an enclosing export/decorator/template wrapper
    3. Chunks longer than chunk_size * OVERSIZE_FACTOR are re-split by lines,
       keeping absolute line numbers and the declaration's kind and symbol

    Args:
        text: Source text with ``\\n`` line endings
        language: Grammar name (key of GRAMMARS)
        chunk_size: Character budget per chunk
        overlap_lines: Line overlap used when re-splitting

    Returns:
        Chunks sorted by (start_line, end_line); empty when the file has no
        declarations
    """
    grammar = GRAMMARS[language]
    source = text.encode("utf-8")
    tree = _get_parser(language).parse(source)

    parts: List[ChunkPart] = []
    for span, kind, symbol in _iter_declarations(tree.root_node, grammar):
        raw = source[span.start_byte:span.end_byte].decode("utf-8", errors="replace")
        content = raw.strip()
        if not content:
            continue

        leading = raw[: len(raw) - len(raw.lstrip())]
        start_line = span.start_point[0] + 1 + leading.count("\n")
        end_line = start_line + content.count("\n")

        if len(content) <= chunk_size * OVERSIZE_FACTOR:
            parts.append(
                ChunkPart(
                    start_line=start_line,
                    end_line=end_line,
                    content=content,
                    chunking_strategy=ChunkingStrategy.STRUCTURAL,
                    node_type=kind.value,
                    symbol=symbol or None,
                )
            )
            continue

        for sub in chunk_text_by_lines(content, chunk_size, overlap_lines):
            parts.append(
                ChunkPart(
                    start_line=start_line + sub.start_line - 1,
                    end_line=start_line + sub.end_line - 1,
                    content=sub.content,
                    chunking_strategy=ChunkingStrategy.STRUCTURAL,
                    node_type=kind.value,
                    symbol=symbol or None,
                )
            )

    parts.sort(key=lambda p: (p.start_line, p.end_line))
    logger.debug(f"Created {len(parts)} structural chunks for {language} source")
    return parts


def chunk_text_by_lines(text: str, chunk_size: int, overlap_lines: int) -> List[ChunkPart]:
    """Greedy line-window chunking against a character budget.

    Lines are added while the chunk stays within ``chunk_size`` characters
    (one newline counted per joined line); a chunk always holds at least one
    line. The next window starts ``min(overlap_lines, lines_in_chunk - 1)``
    lines before the previous end, so every window advances by at least one
    line.

    Args:
        text: Text to split
        chunk_size: Character budget per chunk
        overlap_lines: Lines shared by consecutive chunks

    Returns:
        Windowed chunks in file order; empty for empty text
    """
    if not text:
        return []

    lines = text.replace("\r\n", "\n").split("\n")
    chunks: List[ChunkPart] = []
    total_lines = len(lines)
    start = 0

    while start < total_lines:
        end = start
        current = 0
        while end < total_lines:
            add = len(lines[end]) + (1 if end > start else 0)
            if current + add > chunk_size and end > start:
                break
            current += add
            end += 1
            if current >= chunk_size:
                break

        chunks.append(
            ChunkPart(
                start_line=start + 1,
                end_line=end,
                content="\n".join(lines[start:end]),
                chunking_strategy=ChunkingStrategy.WINDOWED,
            )
        )

        if end >= total_lines:
            break

        overlap = min(overlap_lines, end - start - 1)
        start = end - overlap

    return chunks
