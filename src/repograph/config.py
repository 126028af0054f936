import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple

from repograph.dag.builder import DEFAULT_PRIORITY_BRANCHES, GraphConfig
from repograph.dag.collector import DEFAULT_DEPTH
from repograph.diff.text_diff import MAX_FILE_BYTES, MAX_FILES


def _split(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    history_depth: int = DEFAULT_DEPTH
    diff_max_files: int = MAX_FILES
    diff_max_file_bytes: int = MAX_FILE_BYTES
    priority_branches: Tuple[str, ...] = DEFAULT_PRIORITY_BRANCHES
    io_workers: int = 4

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            allowed_origins=_split(env.get("ALLOWED_ORIGINS", "*")),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            history_depth=int(env.get("HISTORY_DEPTH", DEFAULT_DEPTH)),
            diff_max_files=int(env.get("DIFF_MAX_FILES", MAX_FILES)),
            diff_max_file_bytes=int(env.get("DIFF_MAX_FILE_BYTES", MAX_FILE_BYTES)),
            priority_branches=tuple(_split(env.get("GRAPH_PRIORITY_BRANCHES", ",".join(DEFAULT_PRIORITY_BRANCHES)))),
            io_workers=int(env.get("IO_WORKERS", 4)),
        )

    @property
    def graph_config(self) -> GraphConfig:
        return GraphConfig(priority_branches=self.priority_branches)
