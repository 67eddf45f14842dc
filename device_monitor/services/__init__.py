"""
Device Monitor Services

Evaluation pipeline, leaf-first:
1. store/ - Unit store and notification ledger backends
2. sweeper.py - Staleness flag
3. detectors/ - Offline, battery and recovery candidates
4. push.py / messages.py - Delivery gateway and message templates
5. evaluation.py - Orchestrates one pass
"""

from .evaluation import EvaluationPass, create_evaluation_pass

__all__ = ["EvaluationPass", "create_evaluation_pass"]
