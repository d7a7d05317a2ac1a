from .traffic import (
    TrafficFeature, TrafficSnapshot, SegmentAggregate, HistoryResponse,
    HistoryPoint, HistoryPointsResponse, PredictionPoint, SegmentSeries,
    PredictionMeta, PredictionResponse, CityTick, SelfTestResponse,
    ErrorBody, ErrorResponse,
)

__all__ = [
    "TrafficFeature",
    "TrafficSnapshot",
    "SegmentAggregate",
    "HistoryResponse",
    "HistoryPoint",
    "HistoryPointsResponse",
    "PredictionPoint",
    "SegmentSeries",
    "PredictionMeta",
    "PredictionResponse",
    "CityTick",
    "SelfTestResponse",
    "ErrorBody",
    "ErrorResponse",
]
