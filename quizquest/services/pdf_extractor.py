"""
PDF text acquisition with a selectable-text fast path and an OCR fallback.

Strategies run in order and the first one that yields text wins. Every
strategy reads at most ``page_limit`` pages and returns at most
``char_limit`` characters.
"""
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

import fitz  # PyMuPDF
import pytesseract
import structlog
from PIL import Image

from quizquest.config import OCR_LANG, OCR_SCALE, PDF_CHAR_LIMIT, PDF_PAGE_LIMIT, TESSERACT_CMD
from quizquest.errors import ExtractionError
from quizquest.services.logging import log_performance
from quizquest.services.monitoring import EXTRACTION_RESULTS
from quizquest.services.text import normalize_whitespace

logger = structlog.get_logger()

if TESSERACT_CMD:
    pytesseract.pytesseract.tesseract_cmd = TESSERACT_CMD


@dataclass(frozen=True)
class ExtractionBudget:
    page_limit: int = PDF_PAGE_LIMIT
    char_limit: int = PDF_CHAR_LIMIT

    def __post_init__(self):
        if self.page_limit <= 0 or self.char_limit <= 0:
            raise ValueError("page_limit and char_limit must be positive")


class ExtractionStrategy:
    """Turns PDF bytes into text; an empty string means "no result"."""

    name = "base"

    def extract(self, data: bytes, budget: ExtractionBudget) -> str:
        with fitz.open(stream=data, filetype="pdf") as doc:
            pages = min(doc.page_count, budget.page_limit)
            logger.info("pdf_pages", strategy=self.name, total=doc.page_count, limited_to=pages)
            return self._collect(doc, pages, budget.char_limit)

    def read_page(self, page: "fitz.Page") -> str:
        raise NotImplementedError

    def _collect(self, doc: "fitz.Document", pages: int, char_limit: int) -> str:
        text = ""
        for number in range(pages):
            text += self.read_page(doc.load_page(number)) + "\n"
            if len(text) >= char_limit:
                text = text[:char_limit]
                logger.info("pdf_char_limit_reached", strategy=self.name, page=number + 1, char_limit=char_limit)
                break
        text = normalize_whitespace(text)
        logger.info("pdf_strategy_finished", strategy=self.name, length=len(text))
        return text


class TextLayerStrategy(ExtractionStrategy):
    name = "text_layer"

    def read_page(self, page):
        return page.get_text("text") or ""


class OcrStrategy(ExtractionStrategy):
    """
    Rasterize each page and run Tesseract over it.

    ``scale`` upsamples the page before recognition: higher values read small
    print better and take longer.
    """

    name = "ocr"

    def __init__(self, scale: float = OCR_SCALE, lang: str = OCR_LANG,
                 recognize: Optional[Callable[[Image.Image], str]] = None):
        self.scale = scale
        self.lang = lang
        self._recognize = recognize

    def render(self, page) -> Image.Image:
        pix = page.get_pixmap(matrix=fitz.Matrix(self.scale, self.scale), alpha=False)
        return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)

    def recognize(self, image: Image.Image) -> str:
        if self._recognize is not None:
            return self._recognize(image)
        return pytesseract.image_to_string(image, lang=self.lang)

    def read_page(self, page):
        try:
            page_text = normalize_whitespace(self.recognize(self.render(page)))
        except pytesseract.TesseractNotFoundError:
            # No engine at all; fails the whole stage rather than one page
            raise
        except (pytesseract.TesseractError, RuntimeError, OSError) as e:
            logger.warning("ocr_page_failed", page=page.number + 1, error=str(e))
            return ""
        logger.info("ocr_page_recognized", page=page.number + 1, length=len(page_text))
        return page_text


def default_strategies() -> List[ExtractionStrategy]:
    return [TextLayerStrategy(), OcrStrategy()]


class PdfTextExtractor:
    def __init__(self, strategies: Optional[Sequence[ExtractionStrategy]] = None,
                 budget: Optional[ExtractionBudget] = None):
        self.strategies = list(strategies) if strategies is not None else default_strategies()
        self.budget = budget or ExtractionBudget()

    @log_performance("extract_text_from_pdf")
    def extract(self, data: bytes) -> str:
        """Text of the PDF, or ExtractionError when every strategy comes up empty."""
        last_failed = False
        for strategy in self.strategies:
            try:
                text = strategy.extract(data, self.budget)
            except Exception as e:
                logger.warning("pdf_strategy_failed", strategy=strategy.name, error=str(e))
                EXTRACTION_RESULTS.labels(stage=strategy.name, status="error").inc()
                last_failed = True
                continue
            last_failed = False
            if text:
                EXTRACTION_RESULTS.labels(stage=strategy.name, status="success").inc()
                return text
            EXTRACTION_RESULTS.labels(stage=strategy.name, status="empty").inc()
            logger.warning("pdf_strategy_empty", strategy=strategy.name)

        if last_failed:
            raise ExtractionError("Could not extract text: OCR failed.")
        raise ExtractionError("Could not extract text from this PDF (no text and OCR produced nothing).")
