"""
Detection Engine Module

Gateway to the external detection / fact-check engine.
"""

from .gateway import DetectionEngineGateway, DetectionResult, HTTPDetectionEngine

__all__ = ["DetectionEngineGateway", "DetectionResult", "HTTPDetectionEngine"]
