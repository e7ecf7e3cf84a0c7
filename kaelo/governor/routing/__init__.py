"""Routing Engine - Intent detection and capability selection.

This module provides the routing engine and the pluggable classifier
strategy it delegates to.
"""

from .classifier import Classifier, EntityExtractor, IntentRule, PatternClassifier
from .engine import RoutingEngine

__all__ = ["RoutingEngine", "Classifier", "PatternClassifier", "IntentRule", "EntityExtractor"]
