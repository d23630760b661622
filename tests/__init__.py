"""
Test Suite for tblsummary

- Unit tests for table building, test selection, test execution, and
  p-value augmentation
- Integration tests for the summarise -> add_p -> render pipeline
"""
