"""命令行接口."""

from typing import Optional

import typer
from loguru import logger

from docxtemplate.data.exceptions import DocxTemplateError
from docxtemplate.data.models import ReplacementMap
from docxtemplate.data.report_generator import ReportGenerator
from docxtemplate.service.replacer import PlaceholderReplaceEngine
from docxtemplate.service.scanner import PlaceholderScanEngine
from docxtemplate.utils.logger import setup_logger

app = typer.Typer(help="docx 占位符扫描与替换")


def _fail(message: str) -> None:
    typer.echo(typer.style(message, fg=typer.colors.RED))
    raise typer.Exit(code=1)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志")) -> None:
    """docx 占位符扫描与替换."""
    if verbose:
        setup_logger("DEBUG")


@app.command()
def scan(
    path: str = typer.Argument(..., help=".docx 文件或目录"),
    pattern: Optional[str] = typer.Option(None, help="占位符正则，默认 {{...}}"),
    recursive: bool = typer.Option(True, "--recursive/--no-recursive", help="是否递归查找子目录"),
    report: Optional[str] = typer.Option(None, help="Markdown 扫描报告输出路径"),
) -> None:
    """扫描文档中的占位符."""
    try:
        result = PlaceholderScanEngine(pattern).scan(path, recursive=recursive)
        if report:
            ReportGenerator().generate_scan_report(result, report)
    except DocxTemplateError as e:
        _fail(f"扫描失败: {e}")

    for ph in result.placeholders:
        typer.echo(f"{ph.name} [{ph.kind}] x{ph.total_occurrences}")
        for location in ph.locations:
            typer.echo(f"    {location.display_location}")
    for error in result.errors:
        typer.echo(typer.style(f"{error.file_path}: {error.message}", fg=typer.colors.YELLOW))

    color = typer.colors.GREEN if result.is_successful else typer.colors.RED
    typer.echo(typer.style(result.summary(), fg=color))
    if not result.is_successful:
        raise typer.Exit(code=1)


@app.command()
def replace(
    path: str = typer.Argument(..., help=".docx 文件或目录"),
    map_file: str = typer.Option(..., "--map", help="JSON 替换映射文件"),
    backup: bool = typer.Option(False, "--backup", help="写入前备份原文件"),
    dry_run: bool = typer.Option(False, "--dry-run", help="只预览，不修改文件"),
    workers: Optional[int] = typer.Option(None, help="最大并发文件数"),
    recursive: bool = typer.Option(True, "--recursive/--no-recursive", help="是否递归查找子目录"),
    report: Optional[str] = typer.Option(None, help="Markdown 替换报告输出路径，预览时不生成"),
) -> None:
    """用映射文件替换文档中的占位符."""
    try:
        replacement_map = ReplacementMap.from_json_file(map_file)
        engine = PlaceholderReplaceEngine()
        if dry_run:
            preview = engine.preview(path, replacement_map, recursive=recursive)
        else:
            result = engine.replace(
                path, replacement_map, recursive=recursive, create_backup=backup, max_workers=workers
            )
            if report:
                ReportGenerator().generate_replace_report(result, report)
    except DocxTemplateError as e:
        _fail(f"替换失败: {e}")

    if dry_run:
        for file_preview in preview.file_previews:
            if file_preview.can_process:
                typer.echo(f"{file_preview.file_path}: {file_preview.replacement_count} 处待替换")
            else:
                typer.echo(typer.style(f"{file_preview.file_path}: {file_preview.error_message}", fg=typer.colors.YELLOW))
        if preview.unmapped_placeholders:
            typer.echo(f"未映射的占位符: {', '.join(preview.unmapped_placeholders)}")
        if preview.unused_mappings:
            typer.echo(f"未使用的映射: {', '.join(preview.unused_mappings)}")
        typer.echo(
            typer.style(
                f"预览: {preview.files_to_process} 个文件，{preview.placeholders_to_replace} 处替换",
                fg=typer.colors.GREEN,
            )
        )
        return

    for file_result in result.file_results:
        color = typer.colors.RED if file_result.has_errors else typer.colors.GREEN
        typer.echo(typer.style(file_result.display_result, fg=color))
        for message in file_result.match_errors:
            typer.echo(f"    {message}")
    typer.echo(result.summary())
    logger.debug(f"替换完成，耗时 {result.duration:.3f}s")
    if result.has_errors:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
