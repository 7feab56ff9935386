from batch_shipper.main import main

main()
