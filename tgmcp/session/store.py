"""
会话记录存储模块 - 每个会话标识一份持久化令牌。

【存储格式】
每个会话存储为一个 JSON 文件：<sessions_dir>/<session_id>.json
    {"session": "<不透明令牌>", "timestamp": <毫秒时间戳>}

【写入规则】
- 只有交互式登录成功后才会写入
- 整体写入：先写同目录下的临时文件，再用 os.replace 原子替换，
  进程中途退出也不会留下半截记录
- 令牌为空的记录视为无效，永远不会被使用

【Java 开发者类比】
- SessionRecordStore 类似于一个以文件系统为后端的 Repository
- os.replace 相当于 Files.move(..., ATOMIC_MOVE)
"""

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from tgmcp.errors import InvalidParametersError
from tgmcp.utils.helpers import ensure_dir, normalize_session_id, now_ms


@dataclass
class SessionRecord:
    """一条持久化的会话记录。"""

    session_id: str
    token: str
    timestamp: int  # 写入时刻（毫秒时间戳）

    def to_dict(self) -> dict[str, Any]:
        return {"session": self.token, "timestamp": self.timestamp}


@dataclass
class RecordStatus:
    """
    扫描结果中的一项。

    属性:
        session_id: 由文件名还原的会话标识
        valid: 记录是否可用（可解析且令牌非空）
        reason: 无效时的原因说明
        timestamp: 记录中的写入时间（可能缺失）
    """

    session_id: str
    valid: bool
    reason: str = ""
    timestamp: int | None = None


class SessionRecordStore:
    """
    会话记录存储 - 管理 sessions 目录下的所有记录文件。

    所有入口都会先对会话标识做规范化，保证同一个身份只对应一个文件。
    文件名不是规范形式的旧记录（如 79001234567.json）按规范化后的标识识别，
    第一次读取时改名为规范文件名。

    属性:
        directory: 记录文件所在目录（构造时自动创建）
    """

    def __init__(self, directory: Path):
        self.directory = ensure_dir(Path(directory).expanduser())

    def _path(self, session_id: str) -> Path:
        return self.directory / f"{normalize_session_id(session_id)}.json"

    @staticmethod
    def _canonical(stem: str) -> str | None:
        """文件名 → 规范化的会话标识；无法规范化时返回 None。"""
        try:
            return normalize_session_id(stem)
        except InvalidParametersError:
            return None

    def _aliases(self, sid: str) -> list[Path]:
        """规范化后等于 sid、但文件名不是规范形式的旧记录文件。"""
        return [
            path
            for path in sorted(self.directory.glob("*.json"))
            if path.stem != sid and self._canonical(path.stem) == sid
        ]

    def _locate(self, sid: str) -> Path | None:
        path = self._path(sid)
        if path.exists():
            return path
        aliases = self._aliases(sid)
        if aliases:
            return self._migrate(aliases[0], path)
        return None

    @staticmethod
    def _migrate(legacy: Path, target: Path) -> Path:
        try:
            os.replace(legacy, target)
        except OSError as e:
            logger.warning(f"Could not rename session record {legacy.name} to {target.name}: {e}")
            return legacy
        logger.info(f"Renamed session record {legacy.name} to {target.name}")
        return target

    def load(self, session_id: str) -> SessionRecord | None:
        """
        读取会话记录。

        返回:
            有效记录；文件不存在、无法解析或令牌为空时返回 None
        """
        sid = normalize_session_id(session_id)
        path = self._locate(sid)
        if path is None:
            return None

        try:
            data = self._read(path)
        except (OSError, ValueError) as e:
            logger.warning(f"Session record {sid} is unreadable: {e}")
            return None

        token = data.get("session")
        if not isinstance(token, str) or not token:
            logger.warning(f"Session record {sid} has no token, ignoring")
            return None

        timestamp = data.get("timestamp")
        return SessionRecord(
            session_id=sid,
            token=token,
            timestamp=timestamp if isinstance(timestamp, int) else 0,
        )

    def save(self, session_id: str, token: str) -> SessionRecord:
        """
        写入（或覆盖）会话记录。写入是原子的，同一标识的旧文件名记录随之删除。

        异常:
            InvalidParametersError: 令牌为空
        """
        if not token:
            raise InvalidParametersError("Refusing to save a session record without a token")

        sid = normalize_session_id(session_id)
        record = SessionRecord(session_id=sid, token=token, timestamp=now_ms())
        path = self._path(sid)

        fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=f".{sid}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(record.to_dict(), f, indent=2)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

        for alias in self._aliases(sid):
            alias.unlink(missing_ok=True)
        logger.info(f"Session {sid} saved to {path}")
        return record

    def delete(self, session_id: str) -> bool:
        """
        删除会话记录（包括旧文件名的记录）。

        返回:
            True 表示成功删除，False 表示记录不存在
        """
        sid = normalize_session_id(session_id)
        paths = [p for p in [self._path(sid), *self._aliases(sid)] if p.exists()]
        for path in paths:
            path.unlink()
        return bool(paths)

    def scan(self) -> list[RecordStatus]:
        """
        扫描目录下的所有记录文件，逐个判断是否有效。

        会话标识由文件名规范化得到，同一标识只报告一次（规范文件名优先）。
        文件名无法规范化的记录标记为损坏。损坏的文件只会被标记，不会中断扫描。
        结果按会话标识排序。
        """
        by_id: dict[str, RecordStatus] = {}
        for path in sorted(self.directory.glob("*.json")):
            sid = self._canonical(path.stem)
            if sid is None:
                by_id.setdefault(path.stem, RecordStatus(path.stem, False, "invalid session id"))
                continue
            if sid in by_id and path.stem != sid:
                continue
            by_id[sid] = self._status(sid, path)
        return [by_id[sid] for sid in sorted(by_id)]

    def _status(self, sid: str, path: Path) -> RecordStatus:
        try:
            data = self._read(path)
        except (OSError, ValueError) as e:
            return RecordStatus(sid, False, f"unreadable: {e}")

        timestamp = data.get("timestamp") if isinstance(data.get("timestamp"), int) else None
        token = data.get("session")
        if isinstance(token, str) and token:
            return RecordStatus(sid, True, timestamp=timestamp)
        return RecordStatus(sid, False, "missing token", timestamp)

    def list_valid(self) -> list[str]:
        """列出所有有效记录的会话标识。无效记录记一条警告后跳过。"""
        valid = []
        for status in self.scan():
            if status.valid:
                valid.append(status.session_id)
            else:
                logger.warning(f"Skipping damaged session record {status.session_id}: {status.reason}")
        return valid

    @staticmethod
    def _read(path: Path) -> dict[str, Any]:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("record is not a JSON object")
        return data
