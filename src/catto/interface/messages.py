"""
User-facing messages for failed runs.

Every hard failure is shown as a short, translated prompt to resubmit; the
technical detail stays in the logs.
"""

from __future__ import annotations

from catto.core.enums import UILanguage
from catto.core.exceptions import (
    ConfigurationError,
    LLMError,
    ResponseParseError,
    SourceUnavailableError,
)

ERROR_PARSE = "parse"
ERROR_SOURCE_UNAVAILABLE = "source_unavailable"
ERROR_LLM = "llm"
ERROR_CONFIGURATION = "configuration"
ERROR_UNKNOWN = "unknown"

_PREFIX = {
    UILanguage.EN: "An error occurred: ",
    UILanguage.JA: "エラーが発生しました: ",
}

_CATALOGUE: dict[str, dict[UILanguage, str]] = {
    ERROR_PARSE: {
        UILanguage.EN: "The AI response could not be read. Please submit the case again.",
        UILanguage.JA: "AIの応答を読み取れませんでした。もう一度送信してください。",
    },
    ERROR_SOURCE_UNAVAILABLE: {
        UILanguage.EN: "PubMed could not be reached. Please try again in a few minutes.",
        UILanguage.JA: "PubMedに接続できませんでした。数分後にもう一度お試しください。",
    },
    ERROR_LLM: {
        UILanguage.EN: "The AI service did not respond. Please submit the case again.",
        UILanguage.JA: "AIサービスが応答しませんでした。もう一度送信してください。",
    },
    ERROR_CONFIGURATION: {
        UILanguage.EN: "The service is not configured correctly (API key missing or invalid).",
        UILanguage.JA: "サービスの設定が正しくありません（APIキーが未設定または無効です）。",
    },
    ERROR_UNKNOWN: {
        UILanguage.EN: "Unexpected failure. Please submit the case again.",
        UILanguage.JA: "予期しないエラーです。もう一度送信してください。",
    },
}


def error_code_for(error: BaseException) -> str:
    """Catalogue key for an exception."""
    if isinstance(error, ResponseParseError):
        return ERROR_PARSE
    if isinstance(error, SourceUnavailableError):
        return ERROR_SOURCE_UNAVAILABLE
    if isinstance(error, LLMError):
        return ERROR_LLM
    if isinstance(error, ConfigurationError):
        return ERROR_CONFIGURATION
    return ERROR_UNKNOWN


def user_message(code: str, language: UILanguage = UILanguage.EN) -> str:
    """Prefixed, translated message for an error code."""
    entry = _CATALOGUE.get(code, _CATALOGUE[ERROR_UNKNOWN])
    return _PREFIX[language] + entry[language]
