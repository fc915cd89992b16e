"""LINE Flex message rendering for departure boards.

Components are assembled as Flex JSON and handed to the SDK's `FlexContainer`
once the bubble is complete.
"""
from typing import Any, Dict, List

from linebot.v3.messaging import FlexContainer, FlexMessage

from nexttrain.schemas.departures import DepartureBoard
from nexttrain.schemas.timetable import TrainStop
from nexttrain.services.departures import COHORT_LABELS

# TRA train type codes -> display label and colour
TRAIN_TYPE_META = {
    "1": ("太魯閣", "#d00215"),
    "2": ("普悠瑪", "#d00215"),
    "3": ("自強", "#d00215"),
    "4": ("莒光", "#fe8609"),
    "5": ("復興", "#0000a0"),
    "6": ("區間", "#0000a0"),
    "7": ("普快", "#888888"),
    "10": ("區間快", "#0000a0"),
}


def _text(text: str, **kwargs) -> Dict[str, Any]:
    comp = {"type": "text", "text": text or " "}
    comp.update(kwargs)
    return comp


def _box(layout: str, contents: List[Dict[str, Any]], **kwargs) -> Dict[str, Any]:
    comp = {"type": "box", "layout": layout, "contents": contents}
    comp.update(kwargs)
    return comp


def train_type_meta(stop: TrainStop):
    code = stop.train.train_type.code if stop.train.train_type else None
    if code in TRAIN_TYPE_META:
        return TRAIN_TYPE_META[code]
    name = stop.train.train_type.name if stop.train.train_type else ""
    return name, "#888888"


def stop_row(stop: TrainStop) -> Dict[str, Any]:
    label, color = train_type_meta(stop)
    return _box(
        "horizontal",
        [
            _box("vertical", [_text(stop.train.id, size="xxs"), _text(label, size="sm", color=color)], flex=3),
            _text(stop.depart.text, flex=3, gravity="bottom"),
            _box(
                "vertical",
                [
                    {"type": "filler"},
                    _box(
                        "baseline",
                        [_text("往", flex=0, size="xxs", color="#9e9e9e"), _text(stop.train.destination.name)],
                        spacing="xs",
                    ),
                ],
                flex=5,
            ),
            _text("無狀態", flex=5, size="sm", gravity="bottom", color="#9e9e9e"),
        ],
        spacing="sm",
    )


def stops_box(stops: List[TrainStop]) -> Dict[str, Any]:
    if not stops:
        return _box("vertical", [_text("無結果", size="sm", align="center", color="#b0b0b0")], paddingTop="lg", paddingBottom="lg")
    return _box("vertical", [stop_row(s) for s in stops], spacing="md")


def departures_message(board: DepartureBoard) -> FlexMessage:
    sections = [
        _box(
            "vertical",
            [
                _text(COHORT_LABELS.get(c.direction, str(c.direction)), size="sm", weight="bold", color="#aaaaaa"),
                stops_box(c.stops),
            ],
            spacing="md",
        )
        for c in board.cohorts
    ]
    bubble = {"type": "bubble", "body": _box("vertical", sections, spacing="xxl")}
    return FlexMessage(alt_text=f"{board.station_name} 的最近列車", contents=FlexContainer.from_dict(bubble))
