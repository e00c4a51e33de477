"""CaptionFlow: live caption segmentation and translation."""
