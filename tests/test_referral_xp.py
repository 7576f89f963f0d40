from datetime import date

import pytest

from app.engine.referral_xp import PAYMENT, REGISTRATION, compute_referral_award, registration_multiplier

EID = date(2026, 3, 20)
DAY = date(2026, 3, 10)


class TestRegistrationMultiplier:
    @pytest.mark.parametrize(
        "count,expected",
        [(1, 1.0), (4, 1.0), (5, 1.3), (19, 1.3), (20, 1.6), (49, 1.6), (50, 2.0), (200, 2.0)],
    )
    def test_tiers(self, count, expected):
        assert registration_multiplier(count) == expected


class TestComputeReferralAward:
    def test_fifth_registration_of_the_day(self):
        award = compute_referral_award(REGISTRATION, {"2026-03-10": 4}, 4, DAY, EID)
        assert award.success
        assert award.daily_count == 5
        assert award.multiplier == 1.3
        assert award.xp_awarded == 130
        assert award.daily_referrals == {"2026-03-10": 5}
        assert award.invited_count == 5

    def test_first_registration_of_a_new_day(self):
        award = compute_referral_award(REGISTRATION, {"2026-03-09": 30}, 30, DAY, EID)
        assert award.xp_awarded == 100
        assert award.daily_referrals == {"2026-03-09": 30, "2026-03-10": 1}

    def test_payment_is_flat_and_leaves_counters(self):
        counts = {"2026-03-10": 60}
        award = compute_referral_award(PAYMENT, counts, 60, DAY, EID)
        assert award.success
        assert award.xp_awarded == 400
        assert award.daily_referrals == counts
        assert award.invited_count == 60

    def test_eid_day_is_still_open(self):
        assert compute_referral_award(REGISTRATION, {}, 0, EID, EID).success

    def test_after_eid_nothing_is_awarded(self):
        award = compute_referral_award(REGISTRATION, {"2026-03-21": 2}, 2, date(2026, 3, 21), EID)
        assert not award.success
        assert award.reason == "expired"
        assert award.xp_awarded == 0
        assert award.daily_referrals == {"2026-03-21": 2}

    def test_input_counts_not_mutated(self):
        counts = {"2026-03-10": 4}
        compute_referral_award(REGISTRATION, counts, 4, DAY, EID)
        assert counts == {"2026-03-10": 4}

    def test_unknown_event(self):
        with pytest.raises(ValueError):
            compute_referral_award("birthday", {}, 0, DAY, EID)
