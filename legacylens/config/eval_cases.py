"""Default evaluation cases for a GnuCOBOL checkout, one group per mode."""
from legacylens.core.models.evaluation import EvalCase

DEFAULT_EVAL_CASES: list[EvalCase] = [
    EvalCase(
        mode="general",
        query="How does GnuCOBOL handle file I/O operations?",
        expected_files=("libcob/", "fileio"),
        expected_keywords=("OPEN", "READ", "WRITE", "CLOSE"),
        response_checks=("file", "open", "read"),
        description="General: file I/O operations",
    ),
    EvalCase(
        mode="general",
        query="What runtime library functions does GnuCOBOL provide?",
        expected_files=("libcob/",),
        expected_keywords=("cob_", "runtime"),
        response_checks=("cob_", "libcob"),
        description="General: runtime library",
    ),
    EvalCase(
        mode="explain",
        query="Explain the PROCEDURE DIVISION of cobxref.cob",
        expected_files=("cobxref", "cobc/"),
        expected_keywords=("PROCEDURE", "DIVISION", "PERFORM"),
        response_checks=("procedure", "division"),
        description="Explain: PROCEDURE DIVISION walkthrough",
    ),
    EvalCase(
        mode="explain",
        query="Explain how INSPECT statement processing works",
        expected_files=("libcob/", "cobc/"),
        expected_keywords=("INSPECT", "TALLYING"),
        response_checks=("inspect",),
        description="Explain: INSPECT statement processing",
    ),
    EvalCase(
        mode="dependencies",
        query="What are the dependencies of the compiler main module?",
        expected_files=("cobc/",),
        expected_keywords=("CALL", "PERFORM", "cob_", "include"),
        response_checks=("call", "depend"),
        description="Dependencies: compiler main module",
    ),
    EvalCase(
        mode="dependencies",
        query="What are the dependencies of the file I/O module?",
        expected_files=("libcob/fileio", "libcob/"),
        expected_keywords=("cob_", "file", "open"),
        response_checks=("file", "depend"),
        description="Dependencies: file I/O module",
    ),
    EvalCase(
        mode="documentation",
        query="Generate documentation for the screen handling module",
        expected_files=("libcob/screen", "cobc/"),
        expected_keywords=("SCREEN", "DISPLAY", "ACCEPT"),
        response_checks=("screen", "display"),
        description="Documentation: screen handling",
    ),
    EvalCase(
        mode="documentation",
        query="Generate documentation for the SORT/MERGE implementation",
        expected_files=("libcob/", "cobc/"),
        expected_keywords=("SORT", "MERGE"),
        response_checks=("sort",),
        description="Documentation: SORT/MERGE",
    ),
    EvalCase(
        mode="business-logic",
        query="What business rules govern the EVALUATE statement handling?",
        expected_files=("cobc/",),
        expected_keywords=("EVALUATE", "WHEN"),
        response_checks=("evaluate", "when"),
        description="Business logic: EVALUATE handling",
    ),
    EvalCase(
        mode="business-logic",
        query="What validation rules exist for numeric data types?",
        expected_files=("cobc/", "libcob/"),
        expected_keywords=("numeric", "valid", "PIC", "USAGE"),
        response_checks=("numeric", "valid"),
        description="Business logic: numeric validation",
    ),
]
