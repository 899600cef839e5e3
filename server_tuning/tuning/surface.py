"""
ConfigSurface - Read/merge/write access to one subsystem's config file.

Merging only touches the keys produced by the subsystem's builder;
everything else in the file (comments, unrelated keys, blocks) is
preserved. Keys that are not present yet go into their enclosing block
when the file has one, otherwise they are appended under a managed
header. Merging identical settings twice yields no changes.
"""

import logging
import re
import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional, Pattern, Tuple, TYPE_CHECKING

from ..protocol.errors import SubsystemValidationFailure
from ..protocol.tuning import SettingChange
from ..store.atomic import atomic_write_text
from .builders import ConfigBuilder, NativePairs, STYLE_SPACE, builder_for

if TYPE_CHECKING:
    from ..config import SubsystemConfig

logger = logging.getLogger(__name__)

MANAGED_HEADER = "Managed by server-tuning"

CommandRunner = Callable[[str], subprocess.CompletedProcess]


def run_shell(cmd: str, timeout: int = 60) -> subprocess.CompletedProcess:
    """Run a shell command, capturing output."""
    return subprocess.run(cmd, shell=True, capture_output=True, text=True, timeout=timeout)


class ConfigSurface:
    """
    Configuration surface of a managed subsystem.

    Supports plain key/value files in either ``key value`` or
    ``key = value`` style.
    """

    def __init__(
        self,
        subsystem: str,
        path: Path,
        builder: ConfigBuilder,
        validate_command: Optional[str] = None,
        create_if_missing: bool = False,
        runner: Optional[CommandRunner] = None,
    ):
        """
        Initialize config surface.

        Args:
            subsystem: Subsystem name (e.g. "web_server")
            path: Native configuration file
            builder: Typed builder rendering native keys/values
            validate_command: Optional syntax check; "{path}" is substituted
            create_if_missing: Drop-in files are created when absent
            runner: Command runner (defaults to a local shell)
        """
        self.subsystem = subsystem
        self.path = Path(path)
        self.builder = builder
        self.validate_command = validate_command
        self.create_if_missing = create_if_missing
        self._run = runner or run_shell

    @property
    def available(self) -> bool:
        """Whether this subsystem's configuration can be managed on this host."""
        return self.path.exists() or self.create_if_missing

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> str:
        """Current file contents ('' for a drop-in that does not exist yet)."""
        if not self.path.exists():
            return ""
        return self.path.read_text(encoding="utf-8", errors="surrogateescape")

    def write(self, text: str) -> None:
        atomic_write_text(self.path, text)

    # =========================================================================
    # Merge
    # =========================================================================

    def _pattern(self, key: str) -> Pattern:
        if self.builder.style == STYLE_SPACE:
            sep = r"([ \t]+)"
        else:
            sep = r"([ \t]*=[ \t]*)"
        return re.compile(r"^([ \t]*)(" + re.escape(key) + r")" + sep + r"(.*?)[ \t]*$")

    def _is_comment(self, line: str) -> bool:
        stripped = line.lstrip()
        return not stripped or stripped.startswith(self.builder.comment_prefixes)

    def _format(self, key: str, value: str) -> str:
        if self.builder.style == STYLE_SPACE:
            return f"{key} {value}"
        return f"{key} = {value}"

    def merge(self, text: str, pairs: NativePairs) -> Tuple[str, List[SettingChange]]:
        """
        Merge native pairs into config text.

        Every uncommented occurrence of a key is updated; keys not found are
        added by _add_missing().

        Returns:
            (new_text, changes). new_text is the input unchanged when there
            are no changes.
        """
        wanted: Dict[str, str] = dict(pairs)
        patterns = {key: self._pattern(key) for key in wanted}
        lines = text.splitlines()
        found = set()
        changes: List[SettingChange] = []
        changed_keys = set()

        for i, line in enumerate(lines):
            if self._is_comment(line):
                continue
            for key, value in wanted.items():
                match = patterns[key].match(line)
                if not match:
                    continue
                found.add(key)
                current = match.group(4)
                if current != value:
                    lines[i] = f"{match.group(1)}{key}{match.group(3)}{value}"
                    if key not in changed_keys:
                        changes.append(SettingChange(key=key, previous=current, applied=value))
                        changed_keys.add(key)
                break

        missing = [(key, value) for key, value in pairs if key not in found]
        if missing:
            self._add_missing(lines, missing)
            for key, value in missing:
                changes.append(SettingChange(key=key, previous=None, applied=value))

        if not changes:
            return text, []
        return "\n".join(lines) + "\n", changes

    def _add_missing(self, lines: List[str], missing: NativePairs) -> None:
        """
        Add keys that are not in the file yet.

        Keys that belong to a block go inside that block; a block that does
        not exist is created. Everything else is appended at the end under
        the managed header.
        """
        appended: List[str] = []
        by_block: Dict[str, NativePairs] = {}
        for key, value in missing:
            block = self.builder.BLOCKS.get(key)
            if block is None:
                appended.append(self._format(key, value))
            else:
                by_block.setdefault(block, []).append((key, value))

        for block, block_pairs in by_block.items():
            span = self._find_block(lines, block)
            if span is None:
                appended.append(f"{block} {{")
                appended.extend(f"  {self._format(key, value)}" for key, value in block_pairs)
                appended.append("}")
                continue
            start, end = span
            indent = self._block_indent(lines, start, end)
            lines[end:end] = [f"{indent}{self._format(key, value)}" for key, value in block_pairs]

        if not appended:
            return
        header = f"{self.builder.comment_prefixes[0]} {MANAGED_HEADER}"
        if header not in lines:
            if lines and lines[-1].strip():
                lines.append("")
            lines.append(header)
        lines.extend(appended)

    def _find_block(self, lines: List[str], block: str) -> Optional[Tuple[int, int]]:
        """Line indices of the opening and closing brace of the named block."""
        opening = re.compile(r"^[ \t]*" + re.escape(block) + r"[ \t]*\{[ \t]*$")
        for start, line in enumerate(lines):
            if self._is_comment(line) or not opening.match(line):
                continue
            depth = 0
            for end in range(start, len(lines)):
                if self._is_comment(lines[end]):
                    continue
                depth += lines[end].count("{") - lines[end].count("}")
                if depth <= 0:
                    return start, end
            return None
        return None

    def _block_indent(self, lines: List[str], start: int, end: int) -> str:
        for line in lines[start + 1:end]:
            if line.strip():
                return line[:len(line) - len(line.lstrip())]
        opening = lines[start]
        return opening[:len(opening) - len(opening.lstrip())] + "  "

    def current_values(self, keys: List[str]) -> Dict[str, Optional[str]]:
        """Current value of each key in the file (None when absent)."""
        text = self.read()
        values: Dict[str, Optional[str]] = {key: None for key in keys}
        patterns = {key: self._pattern(key) for key in keys}
        for line in text.splitlines():
            if self._is_comment(line):
                continue
            for key in keys:
                if values[key] is not None:
                    continue
                match = patterns[key].match(line)
                if match:
                    values[key] = match.group(4)
        return values

    # =========================================================================
    # Validation hook
    # =========================================================================

    def validate(self) -> None:
        """
        Run the subsystem's syntax check, if one is configured.

        Raises:
            SubsystemValidationFailure: On non-zero exit or timeout
        """
        if not self.validate_command:
            return

        cmd = self.validate_command.replace("{path}", str(self.path))
        try:
            result = self._run(cmd)
        except subprocess.TimeoutExpired:
            raise SubsystemValidationFailure(self.subsystem, f"validation timed out: {cmd}")
        except OSError as e:
            raise SubsystemValidationFailure(self.subsystem, f"validation could not run: {e}")

        if result.returncode != 0:
            output = ((result.stdout or "") + (result.stderr or "")).strip()
            raise SubsystemValidationFailure(
                self.subsystem,
                f"validation failed (exit {result.returncode}): {cmd}",
                output=output,
            )
        logger.debug("%s configuration validated: %s", self.subsystem, cmd)


def build_surfaces(subsystems: Dict[str, "SubsystemConfig"],
                   runner: Optional[CommandRunner] = None) -> Dict[str, ConfigSurface]:
    """One ConfigSurface per configured subsystem."""
    return {
        name: ConfigSurface(
            subsystem=name,
            path=Path(sub.config_path),
            builder=builder_for(name),
            validate_command=sub.validate_command,
            create_if_missing=sub.create_if_missing,
            runner=runner,
        )
        for name, sub in subsystems.items()
    }
