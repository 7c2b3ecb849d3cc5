from hndigest.pipeline.cli import main

main()
