"""
URL classifier for inferring a page's content type.

Classifies URLs into coarse content types based on their file extension.
"""

from ..models.page import UrlType


class UrlClassifier:
    """
    Maps a URL's final dotted extension onto a UrlType.

    Query strings and fragments are ignored. Anything without a known
    extension is treated as a regular webpage.
    """

    EXTENSION_TYPES = {
        "json": UrlType.JSON,
        "csv": UrlType.CSV,
        "tsv": UrlType.CSV,
        "xml": UrlType.XML,
        "pdf": UrlType.PDF,
        "png": UrlType.IMAGE,
        "jpg": UrlType.IMAGE,
        "jpeg": UrlType.IMAGE,
        "gif": UrlType.IMAGE,
        "webp": UrlType.IMAGE,
        "svg": UrlType.IMAGE,
        "mp3": UrlType.AUDIO,
        "wav": UrlType.AUDIO,
        "mp4": UrlType.VIDEO,
        "webm": UrlType.VIDEO,
        "zip": UrlType.ARCHIVE,
        "gz": UrlType.ARCHIVE,
        "js": UrlType.CODE,
        "css": UrlType.CODE,
        "py": UrlType.CODE,
        "doc": UrlType.DOCUMENT,
        "docx": UrlType.DOCUMENT,
        "xls": UrlType.SPREADSHEET,
        "xlsx": UrlType.SPREADSHEET,
    }

    def classify(self, url: str) -> UrlType:
        """
        Classify a URL's content type.

        Args:
            url: Absolute or relative URL

        Returns:
            Classified UrlType (WEBPAGE when the extension is unknown)
        """
        path = url.lower().split("?", 1)[0].split("#", 1)[0]
        last_segment = path.rsplit("/", 1)[-1]
        if "." not in last_segment:
            return UrlType.WEBPAGE
        extension = last_segment.rsplit(".", 1)[-1]
        return self.EXTENSION_TYPES.get(extension, UrlType.WEBPAGE)

    def classify_batch(self, urls: list[str]) -> dict[str, UrlType]:
        """Classify several URLs at once."""
        return {url: self.classify(url) for url in urls}


# Global classifier instance
url_classifier = UrlClassifier()
