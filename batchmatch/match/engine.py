"""
Batch matching engine for BatchMatch.

Facade owned by the capture workflow: builds the normalizer, matchers and
classifier around one session cache, applies the OCR confidence gate and
exposes the cache lifecycle (reset on camera re-initialization or memory
pressure, dispose at session end).
"""

import logging
import time
from typing import Any, Dict, Optional, Sequence

from ..ingestion.batch_record import BatchRecord
from ..normalize.config import DEFAULT_CONFIG_PATH, get_default_matching_config, load_matching_config, merge_configs
from ..normalize.label_fields import LabelFieldExtractor
from ..normalize.text_normalizer import TextNormalizer
from .classifier import MatchClassifier, get_classification_statistics
from .expiry_matcher import ExpiryMatcher
from .identifier_matcher import IdentifierMatcher
from .results import ClassificationResult
from .similarity_cache import SimilarityCache

logger = logging.getLogger(__name__)


class BatchMatchEngine:
    """
    Matches OCR captures against the session's candidate batches.

    The engine is synchronous and keeps no state between calls other than
    its cache, which only affects speed.
    """

    def __init__(self, config: Optional[Dict] = None, cache: Optional[SimilarityCache] = None):
        """
        Initialize engine with configuration.

        Args:
            config: Full matching configuration (merged onto defaults)
            cache: Cache to use; a new one is created per engine if omitted
        """
        self.config = merge_configs(get_default_matching_config(), config or {})

        cache_config = self.config.get("cache", {})
        self.cache = cache if cache is not None else SimilarityCache(
            enabled=cache_config.get("enabled", True))

        self.normalizer = TextNormalizer()
        self.identifier_matcher = IdentifierMatcher(self.config.get("identifier", {}), self.cache)
        self.expiry_matcher = ExpiryMatcher(self.config.get("expiry", {}), self.cache)
        self.classifier = MatchClassifier(
            self.identifier_matcher,
            self.expiry_matcher,
            self.config.get("matching", {}),
            self.normalizer
        )
        self.label_extractor = LabelFieldExtractor(self.config.get("label_fields", {}), self.normalizer)

        self.min_ocr_confidence = self.config.get("ocr", {}).get("min_confidence", 0.0)

        self.match_count = 0
        self.rejected_capture_count = 0
        self.total_match_time = 0.0
        self._disposed = False

        logger.info("Initialized BatchMatchEngine")

    def _ensure_active(self):
        if self._disposed:
            raise RuntimeError("BatchMatchEngine has been disposed")

    def match(self, batches: Sequence[BatchRecord], extracted_text: Optional[str],
              ocr_confidence: Optional[float] = None,
              identifier_threshold: Optional[float] = None) -> ClassificationResult:
        """
        Match one OCR capture against candidate batches.

        Args:
            batches: Candidate batch records
            extracted_text: Raw OCR text
            ocr_confidence: Confidence reported by the OCR step, if any
            identifier_threshold: Per-call override of the configured threshold

        Returns:
            ClassificationResult (empty when the capture is not trusted)
        """
        self._ensure_active()

        if ocr_confidence is not None and ocr_confidence < self.min_ocr_confidence:
            self.rejected_capture_count += 1
            logger.warning(f"OCR confidence {ocr_confidence:.2f} below minimum "
                           f"{self.min_ocr_confidence:.2f}, capture not matched")
            return ClassificationResult()

        start_time = time.time()
        result = self.classifier.classify(batches, extracted_text, identifier_threshold)
        duration = time.time() - start_time

        self.match_count += 1
        self.total_match_time += duration

        stats = get_classification_statistics(result)
        logger.info(f"Matched capture against {len(batches)} batches in {duration * 1000:.1f} ms: "
                   f"{stats['match_type']}, best similarity {stats['best_similarity']:.3f}")
        return result

    def extract_label_fields(self, extracted_text: Optional[str]) -> Dict[str, Optional[str]]:
        """
        Extract labelled fields (batch, lot, expiry, manufacturing date).

        Args:
            extracted_text: Raw OCR text

        Returns:
            Dictionary of extracted fields
        """
        self._ensure_active()
        return self.label_extractor.extract_fields(extracted_text)

    def reset(self):
        """Clear the session cache; raises RuntimeError once disposed."""
        self._ensure_active()
        self.cache.clear()
        logger.info("BatchMatchEngine cache reset")

    def dispose(self):
        """Clear the cache and release the engine; later calls raise RuntimeError."""
        if self._disposed:
            return
        self.cache.clear()
        self._disposed = True
        logger.info("BatchMatchEngine disposed")

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get engine usage statistics.

        Returns:
            Dictionary with call counts, timing and cache statistics
        """
        return {
            "match_count": self.match_count,
            "rejected_capture_count": self.rejected_capture_count,
            "total_match_time": self.total_match_time,
            "average_match_time": self.total_match_time / self.match_count if self.match_count else 0.0,
            "identifier_threshold": self.classifier.identifier_threshold,
            "nearest_match_floor": self.classifier.nearest_match_floor,
            "cache": self.cache.stats()
        }


def create_batch_match_engine(config_path: str = DEFAULT_CONFIG_PATH) -> BatchMatchEngine:
    """
    Convenience function to create a matching engine from a YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Initialized matching engine
    """
    return BatchMatchEngine(load_matching_config(config_path))
