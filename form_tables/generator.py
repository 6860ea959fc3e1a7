"""
Per-form page generation from a language template.

The template holds a literal token (default "{{FORM}}") wherever the form
code goes; stamping replaces every occurrence. Output keeps the template's
charset.
"""

from pathlib import Path
from typing import Iterable, Union

from .documents import SourceDocument, document_path, read_document, write_document
from .logger import get_module_logger
from .schemas import Language

logger = get_module_logger("generator")


def stamp(template_text: str, form_id: str, token: str = "{{FORM}}") -> str:
    return template_text.replace(token, form_id)


def generate(
    template_path: Union[str, Path],
    form_ids: Iterable[str],
    results_dir: Union[str, Path],
    language: Language,
    token: str = "{{FORM}}",
    backup: bool = True
) -> list[Path]:
    """
    Write <slug>-table-<e|f>.htm for each form id.

    Raises:
        DocumentIOError: the template cannot be read (a failed write for one
            form is raised as well; earlier forms stay written)
    """
    template = read_document(template_path)
    if token not in template.text:
        logger.warning(f"{template.path.name}: token {token!r} not found, "
                       f"pages will be copies of the template")

    results_dir = Path(results_dir)
    results_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for form_id in form_ids:
        target = document_path(results_dir, form_id, language)
        page = SourceDocument(path=target, text="", charset=template.charset)
        write_document(page, stamp(template.text, form_id, token), backup=backup)
        written.append(target)

    logger.info(f"Generated {len(written)} {language.value} page(s) in {results_dir}")
    return written
