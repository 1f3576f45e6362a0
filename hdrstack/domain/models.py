from dataclasses import dataclass, field, fields
from typing import Dict, Any
from hdrstack.kernel.curve.pwl import Pwl
from hdrstack.features.accumulate.models import AccumulateConfig
from hdrstack.features.diffusion.models import LpFilterConfig
from hdrstack.features.tonemap.models import ToneCurveConfig, TonemapConfig
from hdrstack.features.metering.models import MeteringConfig


def _flatten(config: Any) -> Dict[str, Any]:
    res: Dict[str, Any] = {}
    for f in fields(config):
        value = getattr(config, f.name)
        if isinstance(value, Pwl):
            value = value.to_list()
        res[f.name] = value
    return res


@dataclass(frozen=True)
class HdrConfig:
    """
    Composed tuning for one HDR capture.
    Passed into the pipeline at construction; nothing here is mutated at runtime.
    """

    accumulate: AccumulateConfig = field(default_factory=AccumulateConfig)
    lp_filter: LpFilterConfig = field(default_factory=LpFilterConfig)
    tone_curve: ToneCurveConfig = field(default_factory=ToneCurveConfig)
    tonemap: TonemapConfig = field(default_factory=TonemapConfig)
    metering: MeteringConfig = field(default_factory=MeteringConfig)

    def to_dict(self) -> Dict[str, Any]:
        """
        Flattens the composed object into a single JSON-friendly key-value store.
        Curves become lists of [x, y] pairs; the per-capture tonemap is omitted.
        """
        res: Dict[str, Any] = {}
        res.update(_flatten(self.accumulate))
        res.update(_flatten(self.lp_filter))
        res.update(_flatten(self.tone_curve))
        tonemap = _flatten(self.tonemap)
        tonemap.pop("tonemap")
        res.update(tonemap)
        res.update(_flatten(self.metering))
        return res

    @classmethod
    def from_flat_dict(cls, data: Dict[str, Any]) -> "HdrConfig":
        """
        Reconstructs the composed object from a flat dictionary.
        Unknown keys are ignored.
        """

        def filter_keys(config_cls: Any, d: Dict[str, Any]) -> Dict[str, Any]:
            valid_keys = config_cls.__dataclass_fields__.keys()
            return {k: v for k, v in d.items() if k in valid_keys}

        tonemap_data = filter_keys(TonemapConfig, data)
        tonemap_data.pop("tonemap", None)

        return cls(
            accumulate=AccumulateConfig(**filter_keys(AccumulateConfig, data)),
            lp_filter=LpFilterConfig(**filter_keys(LpFilterConfig, data)),
            tone_curve=ToneCurveConfig(**filter_keys(ToneCurveConfig, data)),
            tonemap=TonemapConfig(**tonemap_data),
            metering=MeteringConfig(**filter_keys(MeteringConfig, data)),
        )
