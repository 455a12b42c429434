"""Vision Bounded Context.

Responsible for turning vision-model output into grid state:
- Value Objects: Detection, VisionPacket
- Services: box_to_cells, detection_footprint, apply_detections
"""
