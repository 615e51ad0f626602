"""Localized user-facing messages.

Messages live in a flat catalog keyed by dotted names. English is the
default language; Simplified Chinese is available for teams running
migrations from Chinese locales. The active language is chosen with
``--lang`` or the ``ORA2PG_ADMIN_LANG`` environment variable.
"""

import os

DEFAULT_LANGUAGE = "en"
LANGUAGE_ENV_VAR = "ORA2PG_ADMIN_LANG"

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        # Output classification
        "progress.processing": "processing {kind}: {name}",
        "progress.exported_rows": "exported {rows} rows",
        # Progress tracker
        "tracker.preparing": "preparing...",
        "tracker.completed": "{task} completed",
        # Migration orchestration
        "migration.running_type": "running {type} migration",
        "migration.type_completed": "{type} migration completed",
        "migration.type_failed": "{type} migration failed",
        "migration.cancelled": "migration cancelled: {reason}",
        "migration.dry_run": "dry run, ora2pg will not write to PostgreSQL",
        # Execution status
        "status.pending": "pending",
        "status.running": "running",
        "status.completed": "completed",
        "status.failed": "failed",
        "status.cancelled": "cancelled",
        # Summary
        "summary.title": "Migration Summary",
        "summary.step": "Step",
        "summary.status": "Status",
        "summary.duration": "Duration",
        "summary.exit_code": "Exit Code",
        "summary.detail": "Detail",
        "summary.successful": "successful",
        "summary.failed": "failed",
        "summary.cancelled": "cancelled",
        "summary.total_duration": "total time",
        # Environment checks
        "check.title": "Environment Check",
        "check.tool_found": "ora2pg found at {path}",
        "check.tool_missing": "ora2pg not found",
        "check.client_compatible": "Oracle client {version} is installed and compatible",
        "check.client_incompatible": "Oracle client {version} may not be compatible",
        "check.client_unknown_version": "Oracle client is installed but its version is unknown",
        "check.client_missing": "No Oracle client detected",
        "check.client_error": "Oracle client detection failed: {error}",
        "check.project_ok": "Project configuration found at {path}",
        "check.project_missing": "No project in {path}",
        # Connection tests
        "connection.title": "Database Connection Test",
        "connection.oracle_ok": "Oracle connection succeeded",
        "connection.oracle_failed": "Oracle connection failed",
        "connection.network_failed": "Oracle listener is not reachable",
        "connection.pg_ok": "PostgreSQL connection succeeded",
        "connection.pg_failed": "PostgreSQL connection failed",
        "connection.pg_client_missing": "psql not found, install the PostgreSQL client",
        "connection.details": "connected to {target} in {seconds:.2f}s",
        "connection.all_ok": "All connection tests passed",
        "connection.some_failed": "Some connection tests failed",
        # Project scaffolding
        "init.created": "Project {name} initialized in {path}",
        "init.exists": "A project already exists in {path}",
        "init.next_steps": "Next: edit {config} and run 'ora2pg-admin check env'",
    },
    "zh": {
        "progress.processing": "正在处理 {kind}: {name}",
        "progress.exported_rows": "已导出 {rows} 行",
        "tracker.preparing": "准备开始...",
        "tracker.completed": "{task} 已完成",
        "migration.running_type": "执行 {type} 迁移",
        "migration.type_completed": "{type} 迁移完成",
        "migration.type_failed": "{type} 迁移失败",
        "migration.cancelled": "迁移已取消: {reason}",
        "migration.dry_run": "试运行模式，ora2pg 不会写入 PostgreSQL",
        "status.pending": "等待中",
        "status.running": "运行中",
        "status.completed": "已完成",
        "status.failed": "失败",
        "status.cancelled": "已取消",
        "summary.title": "迁移摘要",
        "summary.step": "步骤",
        "summary.status": "状态",
        "summary.duration": "耗时",
        "summary.exit_code": "退出码",
        "summary.detail": "详情",
        "summary.successful": "成功",
        "summary.failed": "失败",
        "summary.cancelled": "已取消",
        "summary.total_duration": "总耗时",
        "check.title": "环境检查",
        "check.tool_found": "已找到 ora2pg: {path}",
        "check.tool_missing": "未找到 ora2pg",
        "check.client_compatible": "Oracle 客户端 {version} 已安装且兼容",
        "check.client_incompatible": "Oracle 客户端 {version} 版本可能不兼容",
        "check.client_unknown_version": "Oracle 客户端已安装，但无法确定版本",
        "check.client_missing": "未检测到 Oracle 客户端",
        "check.client_error": "Oracle 客户端检测失败: {error}",
        "check.project_ok": "已找到项目配置: {path}",
        "check.project_missing": "{path} 中没有项目",
        "connection.title": "数据库连接测试",
        "connection.oracle_ok": "Oracle 数据库连接成功",
        "connection.oracle_failed": "Oracle 数据库连接失败",
        "connection.network_failed": "网络连通性测试失败",
        "connection.pg_ok": "PostgreSQL 数据库连接成功",
        "connection.pg_failed": "PostgreSQL 连接失败",
        "connection.pg_client_missing": "未找到 psql，请安装 PostgreSQL 客户端",
        "connection.details": "已连接到 {target}，响应时间 {seconds:.2f} 秒",
        "connection.all_ok": "所有数据库连接测试通过",
        "connection.some_failed": "部分连接测试失败",
        "init.created": "项目 {name} 已在 {path} 初始化",
        "init.exists": "{path} 中已存在项目",
        "init.next_steps": "下一步: 编辑 {config} 并运行 'ora2pg-admin check env'",
    },
}

_language = os.environ.get(LANGUAGE_ENV_VAR, DEFAULT_LANGUAGE)


def supported_languages() -> list[str]:
    """Return the language codes that have a message catalog."""
    return sorted(MESSAGES)


def set_language(language: str) -> None:
    """Select the active language.

    Raises:
        ValueError: If no catalog exists for the language
    """
    global _language
    if language not in MESSAGES:
        raise ValueError(
            f"Unsupported language: {language}. Use one of: {', '.join(supported_languages())}"
        )
    _language = language


def get_language() -> str:
    """Return the active language code."""
    return _language if _language in MESSAGES else DEFAULT_LANGUAGE


def t(key: str, **kwargs: object) -> str:
    """Translate a message key into the active language.

    Falls back to English, then to the key itself, when a translation is
    missing.
    """
    template = MESSAGES[get_language()].get(key) or MESSAGES[DEFAULT_LANGUAGE].get(key, key)
    return template.format(**kwargs) if kwargs else template
