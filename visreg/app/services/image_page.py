from __future__ import annotations

import html

from ..utils.fs import read_b64
from .image_store import DEFAULT_CONTENT_TYPE, ImageRecord

# BackstopJS screenshots this page; the image fills the viewport.
_PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <style>
      body {{ margin: 0; display: flex; justify-content: center; align-items: center; height: 100vh; }}
      img {{ max-width: 100%; max-height: 100vh; }}
    </style>
  </head>
  <body>
    <img src="data:{content_type};base64,{payload}" alt="{alt}" />
  </body>
</html>
"""


def render_image_page(*, record: ImageRecord, test_case: str) -> str:
    """Read the staged upload and embed it as a data URI.

    Raises:
        OSError: When the staged file cannot be read.
    """

    return _PAGE_TEMPLATE.format(
        content_type=html.escape(record.content_type or DEFAULT_CONTENT_TYPE, quote=True),
        payload=read_b64(record.path),
        alt=html.escape(test_case, quote=True),
    )
