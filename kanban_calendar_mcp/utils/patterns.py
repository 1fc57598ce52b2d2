"""Compiled regular expressions for the Kanban board annotation grammar.

Grammar:
    - [ ] open task            - [x] completed task
    @{2024-03-01}              due date
    @@09:00  @@09:00-11:30     time (legacy form)
    @@{09:00}  @@{09:00-11:30} time (canonical form)
    #work                      tag
    [[Note]]  [[Note|Alias]]   linked note
    ## Column                  Kanban column heading
"""

import re

OPEN_MARKER = "- [ ]"
DONE_MARKER = "- [x]"

TASK_MARKER = re.compile(r"- \[( |x)\]")

DATE_TOKEN = re.compile(r"@\{(\d{4}-\d{2}-\d{2})\}")

# A range is tried before a single time; the braced and bare forms are both accepted.
TIME_TOKEN = re.compile(
    r"@@(?:\{(?P<braced>\d{2}:\d{2}(?:\s*-\s*\d{2}:\d{2})?)\}"
    r"|(?P<bare>\d{2}:\d{2}(?:\s*-\s*\d{2}:\d{2})?))"
)
TIME_RANGE = re.compile(r"^(\d{2}:\d{2})\s*-\s*(\d{2}:\d{2})$")

TAG_PATTERN = re.compile(r"#[a-zA-Z0-9]+")

WIKILINK_PATTERN = re.compile(r"\[\[([^\]|#]+)(?:#[^\]|]+)?(?:\|[^\]]+)?\]\]")

SECTION_HEADING = re.compile(r"^## ")
SETTINGS_BLOCK = re.compile(r"^%%")

BOLD = re.compile(r"\*\*(.*?)\*\*")
ITALIC = re.compile(r"\*(.*?)\*")
UNDERLINE = re.compile(r"__(.*?)__")

ID_FILLER = re.compile(r"[^a-zA-Z0-9]")
