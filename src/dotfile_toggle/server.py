"""STDIO JSON-lines server exposing the dotfile tools."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from dotfile_toggle.config import CliOverrides, ToggleConfig, load_effective_config
from dotfile_toggle.logging import AuditEvent, JsonlAuditLogger, sanitize_arguments, utc_timestamp
from dotfile_toggle.security import PathBlockedError
from dotfile_toggle.service import DotfileService
from dotfile_toggle.toggle import IgnoreChecker
from dotfile_toggle.tools import ToolDispatchError, ToolRegistry, register_builtin_tools


@dataclass(slots=True, frozen=True)
class Request:
    """Normalized incoming request."""

    request_id: str
    method: str
    params: dict[str, object]


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for server startup configuration."""
    parser = argparse.ArgumentParser(prog="dotfile-toggle")
    parser.add_argument("--repo-root", required=False, default=".")
    parser.add_argument("--data-dir", required=False, default=None)
    parser.add_argument("--max-file-bytes", type=int, required=False, default=None)
    parser.add_argument("--max-total-bytes-per-response", type=int, required=False, default=None)
    parser.add_argument("--warn-unignored", choices=("true", "false"), required=False, default=None)
    return parser


class StdioServer:
    """Line-oriented request router over one DotfileService."""

    def __init__(
        self,
        config: ToggleConfig,
        overrides: CliOverrides | None = None,
        is_ignored: IgnoreChecker | None = None,
    ) -> None:
        self._config = config
        self._overrides = overrides or CliOverrides()
        self._audit_logger = JsonlAuditLogger(path=config.data_dir / "audit.jsonl")
        self._service = DotfileService(
            config,
            is_ignored=is_ignored,
            audit=self._audit_logger.append,
        )
        self._registry = ToolRegistry()
        register_builtin_tools(
            self._registry,
            service=self._service,
            read_audit_entries=self._audit_logger.read,
            reload_config=self._reload_config,
        )
        self._fallback_request_counter = 0
        self._service.start()

    @property
    def service(self) -> DotfileService:
        return self._service

    def serve(self, in_stream: TextIO, out_stream: TextIO) -> None:
        """Process JSON-line requests from stdin and write JSON-line responses."""
        try:
            for raw_line in in_stream:
                line = raw_line.strip()
                if not line:
                    continue
                response = self.handle_json_line(line)
                out_stream.write(f"{json.dumps(response, sort_keys=True)}\n")
                out_stream.flush()
        finally:
            self._service.close()

    def handle_json_line(self, raw_line: str) -> dict[str, object]:
        """Handle a single JSON-line request."""
        try:
            payload = json.loads(raw_line)
        except json.JSONDecodeError:
            request_id = self.next_request_id()
            response = self.error_response(
                request_id=request_id,
                code="INVALID_JSON",
                message="Request must be valid JSON.",
            )
            self.log_request(
                request_id=request_id,
                tool_name="invalid_json",
                arguments={"raw_line_length": len(raw_line)},
                response=response,
            )
            return response
        return self.handle_payload(payload)

    def handle_payload(self, payload: object) -> dict[str, object]:
        """Validate and dispatch a parsed payload."""
        parsed = self.parse_request(payload)
        if isinstance(parsed, dict):
            request_id_value = parsed.get("request_id")
            request_id = (
                request_id_value if isinstance(request_id_value, str) else self.next_request_id()
            )
            self.log_request(
                request_id=request_id,
                tool_name="invalid_request",
                arguments={},
                response=parsed,
            )
            return parsed

        request = parsed
        if request.method == "tools/call":
            unwrapped = self.unwrap_tools_call(request)
            if isinstance(unwrapped, dict):
                self.log_request(
                    request_id=request.request_id,
                    tool_name=request.method,
                    arguments={},
                    response=unwrapped,
                )
                return unwrapped
            request = unwrapped

        try:
            result = self._registry.dispatch(name=request.method, arguments=request.params)
        except PathBlockedError as error:
            response = self.blocked_response(
                request_id=request.request_id,
                reason=error.reason,
                hint=error.hint,
            )
        except ToolDispatchError as error:
            response = self.error_response(
                request_id=request.request_id,
                code=error.code,
                message=error.message,
            )
        except ValueError as error:
            response = self.error_response(
                request_id=request.request_id,
                code="INVALID_CONFIG",
                message=str(error),
            )
        except Exception:
            response = self.error_response(
                request_id=request.request_id,
                code="INTERNAL_ERROR",
                message="Unhandled server error while executing tool.",
            )
        else:
            response = self.enforce_response_size_limit(
                request_id=request.request_id,
                response=self.success_response(request_id=request.request_id, result=result),
            )
        self.log_request(
            request_id=request.request_id,
            tool_name=request.method,
            arguments=request.params,
            response=response,
        )
        return response

    def parse_request(self, payload: object) -> Request | dict[str, object]:
        """Validate request payload and return normalized Request."""
        if not isinstance(payload, dict):
            return self.error_response(
                request_id=self.next_request_id(),
                code="INVALID_REQUEST",
                message="Request must be an object.",
            )

        request_id = self.extract_request_id(payload.get("id"))
        method = payload.get("method")
        params = payload.get("params", {})

        if not isinstance(method, str) or not method:
            return self.error_response(
                request_id=request_id,
                code="INVALID_REQUEST",
                message="Request method must be a non-empty string.",
            )
        if not isinstance(params, dict):
            return self.error_response(
                request_id=request_id,
                code="INVALID_PARAMS",
                message="Request params must be an object.",
            )

        return Request(request_id=request_id, method=method, params=params)

    def unwrap_tools_call(self, request: Request) -> Request | dict[str, object]:
        """Turn a tools/call envelope into a direct tool request."""
        tool_name = request.params.get("name")
        arguments = request.params.get("arguments", {})
        if not isinstance(tool_name, str) or not tool_name:
            return self.error_response(
                request_id=request.request_id,
                code="INVALID_PARAMS",
                message="tools/call params.name must be a non-empty string.",
            )
        if not isinstance(arguments, dict):
            return self.error_response(
                request_id=request.request_id,
                code="INVALID_PARAMS",
                message="tools/call params.arguments must be an object.",
            )
        return Request(request_id=request.request_id, method=tool_name, params=arguments)

    def extract_request_id(self, request_id: object) -> str:
        """Extract request ID from payload or synthesize a fallback."""
        if isinstance(request_id, str) and request_id:
            return request_id
        if isinstance(request_id, int) and not isinstance(request_id, bool):
            return str(request_id)
        return self.next_request_id()

    def next_request_id(self) -> str:
        self._fallback_request_counter += 1
        return f"req-{self._fallback_request_counter:06d}"

    @staticmethod
    def success_response(request_id: str, result: dict[str, object]) -> dict[str, object]:
        """Build success envelope."""
        return {
            "request_id": request_id,
            "ok": True,
            "result": result,
            "warnings": [],
            "blocked": False,
        }

    @staticmethod
    def error_response(request_id: str, code: str, message: str) -> dict[str, object]:
        """Build explicit error envelope."""
        return {
            "request_id": request_id,
            "ok": False,
            "result": {},
            "warnings": [],
            "blocked": False,
            "error": {"code": code, "message": message},
        }

    @staticmethod
    def blocked_response(request_id: str, reason: str, hint: str) -> dict[str, object]:
        """Build explicit blocked response envelope."""
        return {
            "request_id": request_id,
            "ok": False,
            "result": {"reason": reason, "hint": hint},
            "warnings": [],
            "blocked": True,
            "error": {"code": "PATH_BLOCKED", "message": reason},
        }

    def enforce_response_size_limit(
        self,
        request_id: str,
        response: dict[str, object],
    ) -> dict[str, object]:
        """Block responses that exceed max_total_bytes_per_response."""
        response_bytes = len(json.dumps(response, sort_keys=True).encode("utf-8"))
        if response_bytes <= self._service.config.limits.max_total_bytes_per_response:
            return response
        return self.blocked_response(
            request_id=request_id,
            reason="Response exceeds max_total_bytes_per_response limit.",
            hint="Use dotfiles.get for a single file or list only toggleable entries.",
        )

    def log_request(
        self,
        request_id: str,
        tool_name: str,
        arguments: dict[str, object],
        response: dict[str, object],
    ) -> None:
        """Log one sanitized request event."""
        error_payload = response.get("error")
        error_code: str | None = None
        if isinstance(error_payload, dict):
            code_value = error_payload.get("code")
            if isinstance(code_value, str):
                error_code = code_value
        result = response.get("result")
        if error_code is None and isinstance(result, dict):
            kind_value = result.get("error_kind")
            if isinstance(kind_value, str):
                error_code = kind_value
        event = AuditEvent(
            timestamp=utc_timestamp(),
            request_id=request_id,
            tool=tool_name,
            ok=bool(response.get("ok", False)),
            blocked=bool(response.get("blocked", False)),
            error_code=error_code,
            metadata=sanitize_arguments(arguments),
        )
        self._audit_logger.append(event)

    def _reload_config(self) -> ToggleConfig:
        return load_effective_config(self._config.repo_root, self._overrides)


def create_server(
    repo_root: str,
    cli_overrides: CliOverrides | None = None,
    is_ignored: IgnoreChecker | None = None,
) -> StdioServer:
    """Create a configured STDIO server instance with its index built."""
    overrides = cli_overrides or CliOverrides()
    config = load_effective_config(repo_root=Path(repo_root).resolve(), overrides=overrides)
    return StdioServer(config=config, overrides=overrides, is_ignored=is_ignored)


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the dotfile toggle server process."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    warn_unignored: bool | None = None
    if args.warn_unignored == "true":
        warn_unignored = True
    if args.warn_unignored == "false":
        warn_unignored = False
    overrides = CliOverrides(
        data_dir=Path(args.data_dir).resolve() if args.data_dir is not None else None,
        max_file_bytes=args.max_file_bytes,
        max_total_bytes_per_response=args.max_total_bytes_per_response,
        warn_unignored=warn_unignored,
    )
    server = create_server(repo_root=args.repo_root, cli_overrides=overrides)
    server.serve(in_stream=sys.stdin, out_stream=sys.stdout)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
