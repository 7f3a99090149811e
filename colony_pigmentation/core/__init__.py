"""
Core Algorithm Modules

Contains the main algorithmic components of a colony analysis:
- ImageLoader: Image loading and downscaling
- BackgroundMasker: Chroma-key colony masking
- RegionCleaner: Hole filling and speckle removal on the mask
- PigmentationProfiler: Column-bucketed pigmentation profile
- Aggregator: Averaging profiles across images
"""
