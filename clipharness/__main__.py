from clipharness.cli import main

main()
