"""Static facts about each managed tool."""

from __future__ import annotations

from dataclasses import dataclass

from pandock.domain import ToolKind

PANDOC_FALLBACK_INPUT_FORMATS: frozenset[str] = frozenset(
    {
        "biblatex", "bibtex", "bits", "commonmark", "commonmark_x", "creole", "csljson", "csv",
        "djot", "docbook", "docx", "dokuwiki", "endnotexml", "epub", "fb2", "gfm", "haddock",
        "html", "ipynb", "jats", "jira", "json", "latex", "man", "markdown", "markdown_github",
        "markdown_mmd", "markdown_phpextra", "markdown_strict", "mdoc", "mediawiki", "muse",
        "native", "odt", "opml", "org", "pod", "ris", "rst", "rtf", "t2t", "textile", "tikiwiki",
        "tsv", "twiki", "typst", "vimwiki",
    }
)  # fmt: skip

PANDOC_FALLBACK_OUTPUT_FORMATS: frozenset[str] = frozenset(
    {
        "ansi", "asciidoc", "asciidoc_legacy", "asciidoctor", "beamer", "biblatex", "bibtex",
        "chunkedhtml", "commonmark", "commonmark_x", "context", "csljson", "djot", "docbook",
        "docbook4", "docbook5", "docx", "dokuwiki", "dzslides", "epub", "epub2", "epub3", "fb2",
        "gfm", "haddock", "html", "html4", "html5", "icml", "ipynb", "jats", "jats_archiving",
        "jats_articleauthoring", "jats_publishing", "jira", "json", "latex", "man", "markdown",
        "markdown_github", "markdown_mmd", "markdown_phpextra", "markdown_strict", "markua",
        "mediawiki", "ms", "muse", "native", "odt", "opendocument", "opml", "org", "pdf", "plain",
        "pptx", "revealjs", "rst", "rtf", "s5", "slideous", "slidy", "tei", "texinfo", "textile",
        "typst", "xwiki", "zimwiki",
    }
)  # fmt: skip

TYPST_INPUT_FORMATS: frozenset[str] = frozenset({"typ"})
TYPST_OUTPUT_FORMATS: frozenset[str] = frozenset({"pdf", "png", "svg", "html"})


@dataclass(frozen=True)
class ToolSpec:
    """Everything that differs between the managed tools."""

    kind: ToolKind
    #: Executable name without platform suffix
    exe_stem: str
    #: Upstream ``owner/name`` repository
    repo: str
    #: Substrings identifying the program name in version output, longest first
    program_names: tuple[str, ...]
    #: Directory under the application resources holding the bundled copy
    resource_subdir: str
    #: Directory under the per-user data directory holding the portable copy
    portable_subdir: str
    #: Capitalized install folder name used by Windows installers
    install_dir_name: str
    fallback_input_formats: frozenset[str]
    fallback_output_formats: frozenset[str]
    #: Arguments listing input/output formats, ``None`` when the tool has no such probe
    input_formats_args: tuple[str, ...] | None = None
    output_formats_args: tuple[str, ...] | None = None
    version_args: tuple[str, ...] = ("--version",)


TOOL_SPECS: dict[ToolKind, ToolSpec] = {
    ToolKind.CONVERTER: ToolSpec(
        kind=ToolKind.CONVERTER,
        exe_stem="pandoc",
        repo="jgm/pandoc",
        program_names=("pandoc.exe", "pandoc"),
        resource_subdir="pandoc",
        portable_subdir="pandoc-portable",
        install_dir_name="Pandoc",
        fallback_input_formats=PANDOC_FALLBACK_INPUT_FORMATS,
        fallback_output_formats=PANDOC_FALLBACK_OUTPUT_FORMATS,
        input_formats_args=("--list-input-formats",),
        output_formats_args=("--list-output-formats",),
    ),
    ToolKind.TYPESETTER: ToolSpec(
        kind=ToolKind.TYPESETTER,
        exe_stem="typst",
        repo="typst/typst",
        program_names=("typst.exe", "typst"),
        resource_subdir="typst",
        portable_subdir="typst-portable",
        install_dir_name="Typst",
        fallback_input_formats=TYPST_INPUT_FORMATS,
        fallback_output_formats=TYPST_OUTPUT_FORMATS,
    ),
}


def tool_spec(kind: ToolKind) -> ToolSpec:
    return TOOL_SPECS[kind]
