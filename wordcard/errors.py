"""Error kinds surfaced by the store, the credential store and OCR backends.

Each kind carries a `user_message` the caller can show as-is.
"""
from __future__ import annotations


class WordcardError(Exception):
    user_message = "処理に失敗しました。"

    def __init__(self, message: str = "", *, user_message: str | None = None):
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


# --- storage ---------------------------------------------------------------


class StorageError(WordcardError):
    user_message = "データの保存に失敗しました。"


class StorageQuotaError(StorageError):
    user_message = "ストレージの容量が不足しています。不要なデータを整理してください。"


class StorageAccessError(StorageError):
    user_message = "ストレージへのアクセスが拒否されました。保存先の権限を確認してください。"


# --- input validation ------------------------------------------------------


class CardValidationError(WordcardError, ValueError):
    user_message = "問題と解答を入力してください。"


class CredentialError(WordcardError, ValueError):
    user_message = "API Keyの形式が正しくありません。"


# --- OCR collaborator ------------------------------------------------------


class OCRError(WordcardError):
    user_message = "文字認識に失敗しました。"


class OCRMissingCredentialError(OCRError):
    user_message = "API Keyが設定されていません。設定画面から設定してください。"


class OCRRateLimitError(OCRError):
    user_message = "APIのリクエスト上限に達しました。しばらく時間をおいてから再度お試しください。"


class OCRUnauthorizedError(OCRError):
    user_message = "API Keyが無効です。設定画面で正しいAPI Keyを設定してください。"


class OCRMalformedResponseError(OCRError):
    user_message = "レスポンスの解析に失敗しました。画像の内容を確認してください。"


class OCRResponseTooLargeError(OCRError):
    user_message = "レスポンスが大きすぎます。画像を分割してお試しください。"


class OCREmptyResponseError(OCRError):
    user_message = "APIから空のレスポンスが返されました。別の画像を試してください。"


class OCRNetworkError(OCRError):
    user_message = "ネットワークエラーが発生しました。接続を確認してください。"


class OCREngineError(OCRError):
    user_message = "OCRエンジンの実行に失敗しました。"
