"""Tests for the local mock scan generator."""

import random

import pytest

from trustscan.models.schemas import Badge, ScanOrigin
from trustscan.services.mock_scan import BADGE_WEIGHTS, generate_mock_scan, generate_reasons, generate_score
from trustscan.services.normalizer import badge_for_score


class TestMockScan:
    @pytest.mark.parametrize("seed", range(50))
    def test_score_matches_badge(self, seed):
        score, badge = generate_score(random.Random(seed))
        assert 0 <= score <= 100
        assert badge_for_score(score) == badge

    def test_badge_distribution_follows_weights(self):
        rng = random.Random(1234)
        counts = {badge: 0 for badge in Badge}
        for _ in range(5000):
            _, badge = generate_score(rng)
            counts[badge] += 1
        assert 0.55 < counts[Badge.VERIFIED] / 5000 < 0.65
        assert 0.30 < counts[Badge.UNVERIFIED] / 5000 < 0.40
        assert 0.02 < counts[Badge.HIGH_RISK] / 5000 < 0.08

    def test_weights_are_cumulative(self):
        thresholds = [threshold for threshold, *_ in BADGE_WEIGHTS]
        assert thresholds == sorted(thresholds)
        assert thresholds[-1] == 1.0

    def test_reasons_cover_all_categories(self):
        reasons = generate_reasons(Badge.HIGH_RISK)
        for key in "ABCDEF":
            detail = getattr(reasons, key)
            assert detail.summary != "No data available"
            assert detail.details

    def test_url_scan_title(self):
        mock = generate_mock_scan(ScanOrigin(url="https://www.example.com/x"), random.Random(1))
        assert mock.title == "Content from example.com"
        assert mock.id.startswith("scan_")
        assert mock.source == "mock"

    def test_media_scan_has_no_title(self):
        mock = generate_mock_scan(ScanOrigin(media_reference="shot.png"), random.Random(1))
        assert mock.title is None
