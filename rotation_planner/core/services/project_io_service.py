# rotation_planner/core/services/project_io_service.py
from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict

from endaxis_core.event_types import EventType
from endaxis_core.events.payloads import ProjectLoadedPayload
from endaxis_core.io import (
    JsonStoreError,
    PngMetadataError,
    ShareCodeError,
    add_png_text_chunk,
    atomic_write_json,
    compress_to_share_string,
    decompress_share_string,
    dump_json_text,
    now_ms,
    read_json,
    read_png_text_chunk,
)
from endaxis_core.logging_context import log_context, operation_context

from rotation_planner.core.context import PlannerContext
from rotation_planner.core.errors import ProjectExportError, ProjectImportError
from rotation_planner.core.models import (
    PROJECT_FORMAT_VERSION,
    ProjectDocument,
    ProjectFormatError,
)
from .history_service import HistoryService
from .scenario_service import ScenarioService

log = logging.getLogger(__name__)

PNG_METADATA_KEY = "endaxis"
EXPORT_FILE_PREFIX = "endaxis_project_"


def default_export_filename(today: date | None = None) -> str:
    d = today or date.today()
    return f"{EXPORT_FILE_PREFIX}{d.isoformat()}.json"


class ProjectIOService:
    """
    项目文档的导入 / 导出（JSON 文件、分享码、PNG 元数据）。

    导入流程：先完整解析并校验，全部成功后才替换内存状态；
    任一步失败抛 ProjectImportError，内存状态保持不变。
    """

    def __init__(
        self,
        *,
        ctx: PlannerContext,
        history: HistoryService,
        scenarios: ScenarioService,
    ) -> None:
        self._ctx = ctx
        self._history = history
        self._scenarios = scenarios

    # ---------- 文档 ----------

    def export_document(self) -> Dict[str, Any]:
        ctx = self._ctx
        self._scenarios.capture_active()
        doc = ProjectDocument(
            timestamp=now_ms(),
            version=PROJECT_FORMAT_VERSION,
            scenario_list=list(ctx.scenarios),
            active_scenario_id=ctx.active_scenario_id,
            system_constants=ctx.constants,
        )
        return doc.to_dict()

    def parse_document(self, data: Any) -> ProjectDocument:
        try:
            doc = ProjectDocument.from_dict(data)
        except ProjectFormatError as e:
            raise ProjectImportError("项目数据结构不合法", cause=e) from e
        self._cap_scenarios(doc)
        return doc

    def _cap_scenarios(self, doc: ProjectDocument) -> None:
        """
        方案数超过上限时只保留前 max_scenarios 个；当前方案不在其中时顶替最后一个。
        """
        limit = int(self._ctx.config.max_scenarios)
        total = len(doc.scenario_list)
        if total <= limit:
            return
        kept = doc.scenario_list[:limit]
        if all(e.id != doc.active_scenario_id for e in kept):
            kept[-1] = next(e for e in doc.scenario_list if e.id == doc.active_scenario_id)
        doc.scenario_list = kept
        log.warning("imported project has %d scenarios, keeping %d", total, limit)

    def import_document(self, data: Any, *, source: str = "document") -> ProjectDocument:
        with operation_context(f"import_{source}"):
            try:
                doc = self.parse_document(data)
            except ProjectImportError as e:
                log.warning("import rejected: source=%s reason=%s", source, e)
                raise
            self._apply(doc, source)
        return doc

    def _apply(self, doc: ProjectDocument, source: str) -> None:
        ctx = self._ctx
        active = next(e for e in doc.scenario_list if e.id == doc.active_scenario_id)

        ctx.scenarios = list(doc.scenario_list)
        ctx.active_scenario_id = active.id
        ctx.constants = doc.system_constants
        ctx.load_data(active.data)

        ctx.selection.clear()
        ctx.linking.clear()
        ctx.clipboard = None

        with log_context(scenario=active.id):
            self._history.reset(f"import_{source}")
            log.info(
                "project loaded: source=%s version=%s scenarios=%d active=%s",
                source,
                doc.version,
                len(doc.scenario_list),
                active.id,
            )

        ctx.bus.post_payload(EventType.PROJECT_LOADED, ProjectLoadedPayload(source=source, active_id=active.id))
        ctx.publish_scenarios()
        ctx.publish_selection()
        ctx.publish_linking()

    # ---------- JSON 文件 ----------

    def export_json_file(self, path: Path) -> Path:
        with operation_context("export_file", scenario=self._ctx.active_scenario_id):
            doc = self.export_document()
            try:
                atomic_write_json(path, doc, backup=False, indent=2)
            except JsonStoreError as e:
                log.warning("project export failed: %s", e)
                raise ProjectExportError("导出项目文件失败", cause=e) from e
            log.info("project exported: %s", path)
        return path

    def import_json_file(self, path: Path) -> ProjectDocument:
        try:
            data = read_json(path, default={})
        except JsonStoreError as e:
            raise ProjectImportError("项目文件无法读取或不是合法 JSON", cause=e) from e
        return self.import_document(data, source="file")

    # ---------- 分享码 ----------

    def export_share_string(self) -> str:
        text = dump_json_text(self.export_document(), compact=True)
        return compress_to_share_string(text)

    def _decode_share_string(self, code: str) -> Any:
        try:
            text = decompress_share_string(code)
            return json.loads(text)
        except ShareCodeError as e:
            raise ProjectImportError("分享码格式错误或数据损坏", cause=e) from e
        except json.JSONDecodeError as e:
            raise ProjectImportError("分享码内容不是合法 JSON", cause=e) from e

    def import_share_string(self, code: str) -> ProjectDocument:
        return self.import_document(self._decode_share_string(code), source="share")

    # ---------- PNG ----------

    def export_png(self, png_bytes: bytes) -> bytes:
        try:
            return add_png_text_chunk(png_bytes, PNG_METADATA_KEY, self.export_share_string())
        except PngMetadataError as e:
            raise ProjectExportError("写入图片元数据失败", cause=e) from e

    def import_png(self, png_bytes: bytes) -> ProjectDocument:
        try:
            code = read_png_text_chunk(png_bytes, PNG_METADATA_KEY)
        except PngMetadataError as e:
            raise ProjectImportError("不是合法的 PNG 文件", cause=e) from e
        if code is None:
            raise ProjectImportError("图片中没有方案数据")
        return self.import_document(self._decode_share_string(code), source="png")
