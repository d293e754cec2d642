#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""NDC package selection and quantity calculation pipeline."""

from .pipeline import NdcCalcPipeline

__all__ = ["NdcCalcPipeline"]
