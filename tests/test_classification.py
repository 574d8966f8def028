"""Tests for leave-type pool classification."""

import logging

from leaveledger.engine.classification import (Classifier, LeaveTypeRef,
                                               classify_leave_type)


def test_explicit_tag_wins():
    lt = LeaveTypeRef(id=1, code="SICK", name="Casual-ish sick leave", pool="el")
    assert classify_leave_type(lt) == "EL"


def test_legacy_code_and_name_match_with_warning(caplog):
    with caplog.at_level(logging.WARNING):
        assert classify_leave_type(LeaveTypeRef(id=2, code="cl", name="Anything")) == "CL"
        assert classify_leave_type(LeaveTypeRef(id=3, code="X1", name="Sick Leave")) == "SL"
        assert classify_leave_type(LeaveTypeRef(id=4, code="VAC", name="Vacation")) == "EL"
    assert "no pool tag" in caplog.text


def test_unknown_tag_is_unmatched():
    assert classify_leave_type(LeaveTypeRef(id=5, code="CL", name="Casual", pool="ML")) is None


def test_classifier_collects_unmatched():
    classifier = Classifier()
    maternity = LeaveTypeRef(id=7, code="ML", name="Maternity")
    assert classifier.classify(maternity) is None
    assert classifier.classify(LeaveTypeRef(id=8, code="CL", name="Casual", pool="CL")) == "CL"

    warnings = classifier.warnings_for([7, 8, 7])
    assert len(warnings) == 1
    assert "Maternity" in warnings[0]
